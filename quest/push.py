# quest/push.py
"""
Web Push delivery.

Each subscription gets its own send on a small thread pool and every send
is bounded by ``PUSH_SEND_TIMEOUT``. A send never raises: it comes back as
delivered, gone or failed. Subscriptions the push service reports as gone
(404/410) are deleted once all sends are back; the database is only
touched from the calling thread.
"""
import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flask import current_app
from pywebpush import WebPushException, webpush
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .models.push_subscription import PushSubscription

logger = logging.getLogger(__name__)

DEFAULT_VAPID_SUBJECT = "mailto:contact@example.com"
GONE_STATUS_CODES = (404, 410)

DELIVERED = "delivered"
GONE = "gone"
FAILED = "failed"


@dataclass
class DeliveryReport:
    subscription_count: int = 0
    sent_count: int = 0
    failed_count: int = 0
    pruned_ids: List[int] = field(default_factory=list)


def normalize_vapid_subject(raw: Optional[str]) -> str:
    # env values tend to arrive as "mailto: <a@b.c>"
    subject = re.sub(r"\s+", "", raw or "")
    subject = subject.replace("mailto:<", "mailto:").replace(">", "")
    return subject or DEFAULT_VAPID_SUBJECT


def vapid_settings(config=None) -> Optional[Dict[str, str]]:
    """VAPID keys from config, or None when push is not set up."""
    cfg = config if config is not None else current_app.config
    public_key = (cfg.get("VAPID_PUBLIC_KEY") or "").strip()
    private_key = (cfg.get("VAPID_PRIVATE_KEY") or "").strip()
    if not public_key or not private_key:
        return None
    return {
        "public_key": public_key,
        "private_key": private_key,
        "subject": normalize_vapid_subject(cfg.get("VAPID_SUBJECT")),
    }


def _status_code(exc: Exception) -> Optional[int]:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def send_one(
    subscription_info: Dict[str, Any],
    payload: str,
    vapid: Dict[str, str],
    timeout: float,
) -> str:
    endpoint = (subscription_info.get("endpoint") or "")[:48]
    try:
        webpush(
            subscription_info=subscription_info,
            data=payload,
            vapid_private_key=vapid["private_key"],
            # pywebpush fills in aud/exp on this dict, so a fresh one per call
            vapid_claims={"sub": vapid["subject"]},
            timeout=timeout,
        )
        return DELIVERED
    except WebPushException as e:
        status = _status_code(e)
        if status in GONE_STATUS_CODES:
            return GONE
        logger.info("push to %s... failed (status=%s)", endpoint, status)
        return FAILED
    except Exception as e:
        logger.warning("push to %s... failed: %s", endpoint, e)
        return FAILED


def prune_subscriptions(subscription_ids: List[int]) -> None:
    if not subscription_ids:
        return
    try:
        PushSubscription.query.filter(
            PushSubscription.id.in_(subscription_ids)
        ).delete(synchronize_session=False)
        db.session.commit()
        logger.info("pruned push subscriptions %s", subscription_ids)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("could not prune push subscriptions %s", subscription_ids)


def push_to_user(user_id: int, message: Dict[str, Any], vapid: Dict[str, str]) -> DeliveryReport:
    """Send ``message`` to every device of ``user_id`` and wait for all of them."""
    subscriptions = PushSubscription.query.filter_by(user_id=user_id).all()
    report = DeliveryReport(subscription_count=len(subscriptions))
    if not subscriptions:
        return report

    payload = json.dumps(message)
    timeout = float(current_app.config.get("PUSH_SEND_TIMEOUT", 10))
    max_workers = int(current_app.config.get("PUSH_MAX_WORKERS", 8))
    jobs = [(sub.id, sub.subscription_info()) for sub in subscriptions]

    with ThreadPoolExecutor(max_workers=max(1, min(len(jobs), max_workers))) as pool:
        outcomes = list(
            pool.map(lambda job: send_one(job[1], payload, vapid, timeout), jobs)
        )

    gone_ids = []
    for (sub_id, _), outcome in zip(jobs, outcomes):
        if outcome == DELIVERED:
            report.sent_count += 1
        else:
            report.failed_count += 1
            if outcome == GONE:
                gone_ids.append(sub_id)

    prune_subscriptions(gone_ids)
    report.pruned_ids = gone_ids

    logger.info(
        "push user=%s subscriptions=%d sent=%d failed=%d pruned=%d",
        user_id,
        report.subscription_count,
        report.sent_count,
        report.failed_count,
        len(gone_ids),
    )
    return report
