import logging
from collections.abc import Mapping

import requests
from requests import RequestException, Timeout

logger = logging.getLogger(__name__)

TOKEN_PATH = "/api/Auth/RequestToken"
SUBMIT_ORDER_PATH = "/api/Transactions/SubmitOrderRequest"
TRANSACTION_STATUS_PATH = "/api/Transactions/GetTransactionStatus"
REGISTER_IPN_PATH = "/api/URLSetup/RegisterIPN"

IPN_NOTIFICATION_TYPE = "POST"

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class PesapalError(Exception):
    """Base for gateway failures; carries upstream status and body for diagnostics."""

    default_message = "PesaPal request failed"

    def __init__(self, status_code=None, details=None, message=None):
        self.status_code = status_code
        self.details = details
        super().__init__(message or self.default_message)

    @property
    def http_status(self) -> int:
        return self.status_code or 500


class AuthenticationFailure(PesapalError):
    default_message = "Failed to authenticate with PesaPal"


class GatewaySubmissionFailure(PesapalError):
    default_message = "Failed to process payment"

    def __init__(self, status_code=None, details=None, message=None, timed_out=False):
        # status defaults to 500 when the gateway never answered
        super().__init__(status_code or 500, details, message)
        self.timed_out = timed_out


class GatewayStatusFailure(PesapalError):
    default_message = "Failed to fetch transaction status"


class IpnRegistrationFailure(PesapalError):
    default_message = "Failed to register IPN URL"


def _body(resp):
    try: return resp.json()
    except ValueError: return {"raw": resp.text}


def _bearer(token: str) -> dict:
    return {**JSON_HEADERS, "Authorization": f"Bearer {token}"}


def request_access_token(config) -> str:
    """Exchange the consumer key/secret for a short-lived bearer token.

    Each call re-authenticates; nothing is cached.
    """
    url = config.url(TOKEN_PATH)
    body = {"consumer_key": config.consumer_key, "consumer_secret": config.consumer_secret}
    try:
        resp = requests.post(url, json=body, headers=JSON_HEADERS, timeout=config.token_timeout)
    except RequestException as e:
        logger.error("PesaPal token request failed: %s", e)
        raise AuthenticationFailure(None, str(e))

    data = _body(resp)
    if not resp.ok:
        logger.error("PesaPal token request rejected: status=%s body=%s", resp.status_code, data)
        raise AuthenticationFailure(resp.status_code, data)

    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        logger.error("PesaPal token response has no token: status=%s body=%s", resp.status_code, data)
        raise AuthenticationFailure(resp.status_code, data, "No access token received from PesaPal")
    return token


def build_order_payload(config, caller_fields: Mapping) -> dict:
    """Merge caller fields with the server-side IPN settings, server values winning."""
    return {
        **caller_fields,
        "callback_url": config.callback_url,
        "notification_id": config.ipn_id,
        "ipn_notification_type": IPN_NOTIFICATION_TYPE,
    }


def submit_order(config, caller_fields) -> dict:
    """Submit an order request and return PesaPal's response body untouched.

    Field validation is left to the gateway. Raises AuthenticationFailure when
    no token can be obtained and GatewaySubmissionFailure for everything else.
    The timeout bounds each connect and read, not the total transfer time.
    """
    if not isinstance(caller_fields, Mapping):
        raise GatewaySubmissionFailure(400, "Order fields must be a JSON object", "Invalid order request")

    token = request_access_token(config)
    payload = build_order_payload(config, caller_fields)
    url = config.url(SUBMIT_ORDER_PATH)
    try:
        resp = requests.post(url, json=payload, headers=_bearer(token), timeout=config.submit_timeout)
    except Timeout as e:
        logger.error("PesaPal order submission timed out after %ss: ref=%s", config.submit_timeout, payload.get("id"))
        raise GatewaySubmissionFailure(
            None, f"Order submission timed out after {config.submit_timeout:g}s: {e}", timed_out=True
        )
    except RequestException as e:
        logger.error("PesaPal order submission failed: ref=%s error=%s", payload.get("id"), e)
        raise GatewaySubmissionFailure(None, str(e))

    data = _body(resp)
    if not resp.ok:
        logger.error(
            "PesaPal order submission rejected: ref=%s status=%s body=%s",
            payload.get("id"), resp.status_code, data,
        )
        raise GatewaySubmissionFailure(resp.status_code, data)
    return data


def get_transaction_status(config, tracking_id: str) -> dict:
    """Ask PesaPal for the authoritative status of one payment attempt.

    ``status_code`` in the response: 0 invalid, 1 completed, 2 failed, 3 reversed.
    """
    token = request_access_token(config)
    url = config.url(TRANSACTION_STATUS_PATH)
    try:
        resp = requests.get(
            url, params={"orderTrackingId": tracking_id}, headers=_bearer(token), timeout=config.status_timeout
        )
    except RequestException as e:
        logger.error("PesaPal status request failed: tracking_id=%s error=%s", tracking_id, e)
        raise GatewayStatusFailure(None, str(e))

    data = _body(resp)
    if not resp.ok:
        logger.error("PesaPal status request rejected: tracking_id=%s status=%s body=%s", tracking_id, resp.status_code, data)
        raise GatewayStatusFailure(resp.status_code, data)
    if not isinstance(data, dict):
        logger.error("PesaPal status response is not an object: tracking_id=%s body=%s", tracking_id, data)
        raise GatewayStatusFailure(resp.status_code, data, "Unexpected transaction status response")
    return data


def register_ipn(config, url: str, ipn_type: str = IPN_NOTIFICATION_TYPE) -> dict:
    """Register ``url`` as an IPN listener; the returned ``ipn_id`` is what goes into PESAPAL_IPN_ID."""
    token = request_access_token(config)
    try:
        resp = requests.post(
            config.url(REGISTER_IPN_PATH),
            json={"url": url, "ipn_notification_type": ipn_type},
            headers=_bearer(token),
            timeout=config.status_timeout,
        )
    except RequestException as e:
        logger.error("PesaPal IPN registration failed: url=%s error=%s", url, e)
        raise IpnRegistrationFailure(None, str(e))

    data = _body(resp)
    if not resp.ok:
        logger.error("PesaPal IPN registration rejected: url=%s status=%s body=%s", url, resp.status_code, data)
        raise IpnRegistrationFailure(resp.status_code, data)
    # PesaPal answers 200 with an "error" object for bad URLs
    if not isinstance(data, dict) or not data.get("ipn_id"):
        logger.error("PesaPal IPN registration returned no ipn_id: url=%s body=%s", url, data)
        raise IpnRegistrationFailure(resp.status_code, data, "No ipn_id received from PesaPal")
    return data
