import json
import logging

from django.core.exceptions import ImproperlyConfigured
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from orders.models import Order
from .conf import get_config
from .integrations.pesapal import (
    AuthenticationFailure,
    GatewayStatusFailure,
    PesapalError,
    get_transaction_status,
    request_access_token,
)
from .services import WebhookError, handle_webhook, start_payment

logger = logging.getLogger(__name__)

# The IPN endpoint is called by PesaPal's servers, so it is open to any origin.
WEBHOOK_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError): return None


def _gateway_error(e: PesapalError, error: str) -> JsonResponse:
    return JsonResponse({"error": error, "details": e.details}, status=e.http_status)


@csrf_exempt
@require_POST
def pesapal_token_view(request):
    try:
        token = request_access_token(get_config())
    except AuthenticationFailure as e:
        return _gateway_error(e, "Failed to authenticate with PesaPal")
    return JsonResponse({"token": token})


@csrf_exempt
@require_POST
def pesapal_order_view(request):
    """Proxy an order to PesaPal.

    The body is forwarded as the order request. ``?order_id=<pk>`` names the
    local order this payment attempt belongs to, so the IPN can update it.
    """
    body = _json_body(request)
    if not isinstance(body, dict):
        return JsonResponse({"error": "Invalid JSON body"}, status=400)

    order = None
    raw_order_id = request.GET.get("order_id")
    if raw_order_id:
        order = Order.objects.filter(pk=raw_order_id).first() if raw_order_id.isdigit() else None
        if order is None:
            return JsonResponse({"error": f"Unknown order_id: {raw_order_id}"}, status=400)

    try:
        result = start_payment(body, order=order, config=get_config())
    except PesapalError as e:
        return _gateway_error(e, "Failed to process payment")
    return JsonResponse(result, status=200, safe=False)


@require_GET
def pesapal_status_view(request, tracking_id: str):
    try:
        data = get_transaction_status(get_config(), tracking_id)
    except AuthenticationFailure as e:
        return _gateway_error(e, "Failed to authenticate with PesaPal")
    except GatewayStatusFailure as e:
        return _gateway_error(e, "Failed to fetch transaction status")
    return JsonResponse(data, status=200, safe=False)


def _webhook_response(data, status=200) -> HttpResponse:
    resp = JsonResponse(data, status=status)
    for key, value in WEBHOOK_CORS_HEADERS.items():
        resp[key] = value
    return resp


@csrf_exempt
def pesapal_webhook(request):
    if request.method == "OPTIONS":
        resp = HttpResponse("ok")
        for key, value in WEBHOOK_CORS_HEADERS.items():
            resp[key] = value
        return resp
    if request.method != "POST":
        resp = _webhook_response({"error": "Method not allowed"}, status=405)
        resp["Allow"] = "POST, OPTIONS"
        return resp

    payload = _json_body(request)
    try:
        ack = handle_webhook(payload)
    except (WebhookError, ImproperlyConfigured) as e:
        logger.error("Webhook processing error: %s", e)
        return _webhook_response({"error": "Webhook processing failed", "message": str(e)}, status=500)
    return _webhook_response(ack)
