from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.dependencies import (
    get_db,
    get_notification_dispatcher,
    get_payment_service,
    require_admin,
)
from app.core.logging_config import get_logger
from app.jobs.reminders import send_upcoming_reminders
from app.models.user import User
from app.schemas.payment import ReconcileOut
from app.services.notification_service import NotificationDispatcher
from app.services.payment_service import PaymentService

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger()


# =====================================================================
# PAYMENT ↔ BOOKING RECONCILIATION
# =====================================================================
@router.post("/payments/reconcile", response_model=ReconcileOut)
def reconcile_payments(
    admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    repaired = service.reconcile()
    logger.bind(log_type="admin").info(f"Admin ran reconciliation | admin={admin.email} | repaired={repaired}")
    return ReconcileOut(repaired=len(repaired), booking_ids=repaired)


# =====================================================================
# REMINDER SCAN (manual trigger)
# =====================================================================
@router.post("/jobs/reminders")
def run_reminders(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    reminded = send_upcoming_reminders(db, notifier)
    logger.bind(log_type="admin").info(f"Admin ran reminder scan | admin={admin.email} | sent={len(reminded)}")
    return {"reminded": len(reminded), "booking_ids": reminded}
