from functools import lru_cache

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.core.auth_utils import decode_token
from app.core.config import settings
from app.models.user import User
from app.services.booking_service import BookingService
from app.services.notification_service import NotificationDispatcher, EmailSender
from app.services.payment_service import PaymentService
from app.utils.razorpay_client import RazorpayGateway

security = HTTPBearer()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    token = credentials.credentials  # Extract JWT token

    payload = decode_token(token)

    user = db.query(User).filter(User.email == payload["sub"]).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.role != payload["role"]:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid role"
        )

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admins only")
    return user


# ---------------- COLLABORATORS (built once per process) ----------------
@lru_cache()
def get_payment_gateway() -> RazorpayGateway:
    return RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )


@lru_cache()
def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(EmailSender())


# ---------------- SERVICES (per request) ----------------
def get_booking_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> BookingService:
    return BookingService(db, notifier=notifier, background_tasks=background_tasks)


def get_payment_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> PaymentService:
    return PaymentService(db, gateway, notifier=notifier, background_tasks=background_tasks)
