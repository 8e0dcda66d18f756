"""
Trade confirmation e-mail delivery.

Runs on a Celery worker, detached from the request that executed the
trade; a delivery failure here never reaches the trade result.
"""
import logging
from decimal import Decimal

import httpx

from assetcompass.scheduler.celery_app import app
from assetcompass.core.config import settings

logger = logging.getLogger(__name__)


def render_trade_email(
    ticker: str,
    quantity: Decimal,
    price: Decimal,
    invested_amount: Decimal,
    payment_currency: str,
) -> str:
    return f"""
        <div style="font-family: Arial, sans-serif; padding: 20px; color: #333;">
            <h2 style="color: #10b981;">Trade Executed</h2>
            <p>Bought <strong>{ticker}</strong></p>
            <ul>
                <li>Shares: {quantity:.4f}</li>
                <li>Price: ${price:.2f}</li>
                <li>Total: {invested_amount:.2f} {payment_currency}</li>
            </ul>
        </div>
    """


def deliver_trade_confirmation(
    owner_email: str,
    ticker: str,
    quantity: str,
    price: str,
    invested_amount: str,
    payment_currency: str = "USD",
    transport: httpx.BaseTransport | None = None,
) -> dict:
    """POST the confirmation through the Resend API."""
    if not settings.NOTIFICATIONS_ENABLED:
        return {"status": "disabled"}
    if not settings.RESEND_API_KEY:
        logger.info(f"RESEND_API_KEY not configured; skipping trade email to {owner_email}")
        return {"status": "skipped"}

    html = render_trade_email(
        ticker, Decimal(quantity), Decimal(price), Decimal(invested_amount), payment_currency
    )
    payload = {
        "from": settings.NOTIFY_SENDER,
        "to": [owner_email],
        "subject": f"Trade Executed: {ticker}",
        "html": html,
    }
    headers = {"Authorization": f"Bearer {settings.RESEND_API_KEY}"}

    try:
        with httpx.Client(timeout=10.0, transport=transport) as client:
            resp = client.post(settings.RESEND_API_URL, json=payload, headers=headers)
            resp.raise_for_status()
            message_id = resp.json().get("id")
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Failed to send trade email to {owner_email}: {e}")
        return {"status": "failed", "error": str(e)}

    logger.info(f"Trade email sent to {owner_email} for {ticker}")
    return {"status": "sent", "id": message_id}


@app.task(name="assetcompass.tasks.notifications.send_trade_confirmation")
def send_trade_confirmation(
    owner_email: str,
    ticker: str,
    quantity: str,
    price: str,
    invested_amount: str,
    payment_currency: str = "USD",
):
    """Celery entry point for trade confirmation e-mails."""
    return deliver_trade_confirmation(
        owner_email, ticker, quantity, price, invested_amount, payment_currency
    )
