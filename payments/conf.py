"""PesaPal configuration, built once from ``settings.PESAPAL``."""

from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.dispatch import receiver

STATUS_POLICIES = ("trust", "verify")

PRODUCTION_CALLBACK_URL = "https://tinas-bakery.vercel.app/payment-callback"
DEFAULT_CALLBACK_URL = "http://localhost:5173/payment-callback"


def resolve_callback_url(deploy_env, override=None) -> str:
    """Pick the browser return URL once at startup.

    Production always uses the live site; elsewhere ``override`` (PESAPAL_CALLBACK_URL)
    wins over the local dev server.
    """
    if (deploy_env or "").strip().lower() == "production":
        return PRODUCTION_CALLBACK_URL
    return override or DEFAULT_CALLBACK_URL


@dataclass(frozen=True)
class PesapalConfig:
    base_url: str
    consumer_key: str
    consumer_secret: str
    ipn_id: str
    callback_url: str
    status_policy: str = "trust"
    token_timeout: float = 15.0
    submit_timeout: float = 30.0
    status_timeout: float = 15.0

    def __post_init__(self):
        if self.status_policy not in STATUS_POLICIES:
            raise ImproperlyConfigured(
                f"PESAPAL['STATUS_POLICY'] must be one of {STATUS_POLICIES}, got {self.status_policy!r}"
            )

    def url(self, path: str) -> str:
        return self.base_url.rstrip("/") + path

    @classmethod
    def from_settings(cls) -> "PesapalConfig":
        raw = getattr(settings, "PESAPAL", None)
        if not raw:
            raise ImproperlyConfigured("PESAPAL setting is required")
        return cls(
            base_url=raw.get("BASE_URL", ""),
            consumer_key=raw.get("CONSUMER_KEY", ""),
            consumer_secret=raw.get("CONSUMER_SECRET", ""),
            ipn_id=raw.get("IPN_ID", ""),
            callback_url=raw.get("CALLBACK_URL", ""),
            status_policy=(raw.get("STATUS_POLICY") or "trust").lower(),
            token_timeout=float(raw.get("TOKEN_TIMEOUT", 15)),
            submit_timeout=float(raw.get("SUBMIT_TIMEOUT", 30)),
            status_timeout=float(raw.get("STATUS_TIMEOUT", 15)),
        )


@lru_cache(maxsize=None)
def get_config() -> PesapalConfig:
    return PesapalConfig.from_settings()


@receiver(setting_changed)
def _reset_config(*, setting, **kwargs):
    # only fires under override_settings in tests
    if setting == "PESAPAL":
        get_config.cache_clear()
