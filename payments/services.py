# payments/services.py
import logging

from django.db import DatabaseError, transaction

from orders.models import Order
from orders.services import update_payment_status
from .conf import get_config
from .integrations.pesapal import PesapalError, get_transaction_status, submit_order
from .models import PaymentTransaction

logger = logging.getLogger(__name__)

WEBHOOK_ACK = {"success": True, "message": "Webhook processed successfully"}

# PesaPal GetTransactionStatus status_code -> Order.payment_status
GATEWAY_STATUS_MAP = {
    1: Order.COMPLETED,
    2: Order.FAILED,
    3: Order.REVERSED,
}


class WebhookError(Exception):
    pass


class MalformedWebhook(WebhookError):
    pass


class PersistenceFailure(WebhookError):
    pass


def link_transaction(*, tracking_id: str, order: Order, merchant_reference: str = "") -> PaymentTransaction:
    """Record which local order a PesaPal tracking id belongs to."""
    defaults = {"order": order}
    if merchant_reference:
        defaults["merchant_reference"] = merchant_reference
    txn, _ = PaymentTransaction.objects.update_or_create(tracking_id=tracking_id, defaults=defaults)
    return txn


def start_payment(caller_fields, *, order: Order | None = None, config=None) -> dict:
    """Submit an order to PesaPal and, when ``order`` is given, link the attempt to it.

    The gateway response is returned as-is. Linking problems are logged only:
    the customer already has a redirect URL and the IPN will still be stored.
    """
    config = config or get_config()
    result = submit_order(config, caller_fields)

    if order is None:
        return result

    tracking_id = result.get("order_tracking_id") if isinstance(result, dict) else None
    if not tracking_id:
        logger.warning("PesaPal response for order %s has no order_tracking_id: %s", order.reference, result)
        return result
    try:
        link_transaction(
            tracking_id=tracking_id,
            order=order,
            merchant_reference=result.get("merchant_reference") or caller_fields.get("id") or order.reference,
        )
    except DatabaseError:
        logger.exception("Failed to link tracking_id=%s to order %s", tracking_id, order.reference)
    return result


def record_gateway_status(txn: PaymentTransaction, data: dict) -> str | None:
    """Save PesaPal's status description on ``txn`` and map its status_code to an order status."""
    if not isinstance(data, dict):
        return None
    description = str(data.get("payment_status_description") or "")[:32]
    if description:
        txn.gateway_status = description
        txn.save(update_fields=["gateway_status", "updated_at"])
    try:
        code = int(data.get("status_code"))
    except (TypeError, ValueError):
        return None
    return GATEWAY_STATUS_MAP.get(code)


def _resolve_payment_status(txn: PaymentTransaction, config) -> str | None:
    if config.status_policy == "trust":
        return Order.COMPLETED

    data = get_transaction_status(config, txn.tracking_id)
    status = record_gateway_status(txn, data)
    if status is None:
        reported = data.get("payment_status_description") if isinstance(data, dict) else data
        logger.info("PesaPal reports tracking_id=%s as %r; order left unchanged", txn.tracking_id, reported)
    return status


def _apply_order_status(txn: PaymentTransaction, config) -> None:
    try:
        status = _resolve_payment_status(txn, config)
        if status:
            updated = update_payment_status(txn.order_id, status)
            logger.info("Order %s -> %s (tracking_id=%s, rows=%s)", txn.order_id, status, txn.tracking_id, updated)
    except (DatabaseError, PesapalError, ValueError):
        logger.exception("Order update failed for tracking_id=%s order=%s", txn.tracking_id, txn.order_id)


def handle_webhook(payload, *, config=None) -> dict:
    """Store a PesaPal IPN and move the linked order's payment status.

    Re-delivery of the same payload is safe. Only the transaction upsert can
    fail the request; the order update is best effort.
    """
    if not isinstance(payload, dict):
        raise MalformedWebhook("Webhook body must be a JSON object")
    tracking_id = payload.get("OrderTrackingId")
    if not tracking_id or not isinstance(tracking_id, str):
        raise MalformedWebhook("Missing OrderTrackingId in webhook data")

    config = config or get_config()
    logger.info("PesaPal IPN received: %s", payload)

    try:
        with transaction.atomic():
            prior = PaymentTransaction.objects.select_for_update().filter(tracking_id=tracking_id).first()
            txn, created = PaymentTransaction.objects.update_or_create(
                tracking_id=tracking_id,
                defaults={
                    "merchant_reference": str(payload.get("OrderMerchantReference") or ""),
                    "notification_type": str(payload.get("OrderNotificationType") or ""),
                    "callback_data": payload,
                },
            )
    except DatabaseError as e:
        logger.exception("Failed to store PesaPal IPN for tracking_id=%s", tracking_id)
        raise PersistenceFailure(str(e)) from e

    if prior is not None and prior.is_linked:
        _apply_order_status(txn, config)
    else:
        logger.info("tracking_id=%s is not linked to an order yet (new=%s)", tracking_id, created)

    return dict(WEBHOOK_ACK)
