from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

PESAPAL = {
    **PESAPAL,
    'BASE_URL': 'https://pesapal.test/v3',
    'CONSUMER_KEY': 'test-key',
    'CONSUMER_SECRET': 'test-secret',
    'IPN_ID': 'ipn-test-id',
    'CALLBACK_URL': 'https://site/payment-callback',
    'STATUS_POLICY': 'trust',
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'root': {'handlers': [], 'level': 'CRITICAL'},
}
