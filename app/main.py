from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.db import base  # noqa: F401  (registers every model on Base)
from app.api.routes import admin, bookings, payments
from app.core.config import settings
from app.core.exceptions import BookingAppError

# ⭐ Import logging system
from app.core.logging_config import get_logger

logger = get_logger()

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="API for Bookings, Razorpay Payments & Reconciliation"
)

# ⭐ Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url} -> {str(e)}")
        raise e


# ⭐ Domain errors -> {"detail", "error"}
@app.exception_handler(BookingAppError)
async def booking_app_error_handler(request: Request, exc: BookingAppError):
    level = "ERROR" if exc.status_code >= 500 else "WARNING"
    logger.log(level, f"{exc.code}: {request.method} {request.url.path} -> {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": exc.code},
    )


# ⭐ CORS (important for frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Can restrict later for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS REGISTER ORDER MATTERS --------
app.include_router(bookings.router)
app.include_router(payments.router)
app.include_router(admin.router)

@app.get("/", tags=["Root"])
def root():
    return {"message": "Backend running successfully"}
