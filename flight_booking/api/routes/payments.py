import logging
import os

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from flight_booking.api.routes.dependencies import get_current_user_id, get_db, http_error
from flight_booking.api.routes.presenters import payment_response
from flight_booking.api.schemas.schemas import (
    PaymentMethodResponse,
    PaymentResponse,
    PixPaymentRequest,
    PixPaymentResponse,
    PixSimulateRequest,
    PixWebhookRequest,
    ReconciliationResponse,
)
from flight_booking.application.payment_service import PaymentService, ReconciliationResult
from flight_booking.domain.exceptions import FlightBookingError
from flight_booking.domain.state_machine import PaymentMethod
from flight_booking.infrastructure.pix.webhook import verify_signature, webhook_secret

router = APIRouter(prefix="/payments", tags=["payments"])
logger = logging.getLogger(__name__)


async def verified_webhook_payload(
    request: Request,
    x_webhook_signature: str | None = Header(default=None),
) -> PixWebhookRequest:
    """
    Trust boundary for payment-network notifications: the signature is
    checked against the raw body before anything is parsed or applied.
    """
    body = await request.body()
    secret = webhook_secret()

    if secret is None:
        logger.warning("PIX_WEBHOOK_SECRET is not set; accepting unsigned webhook.")
    elif not verify_signature(secret, body, x_webhook_signature):
        logger.warning("Rejected PIX webhook with invalid signature.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )

    try:
        return PixWebhookRequest.model_validate_json(body)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def _reconciliation_response(result: ReconciliationResult) -> ReconciliationResponse:
    return ReconciliationResponse(
        payment_id=result.payment_id,
        payment_status=result.payment_status,
        booking_id=result.booking_id,
        booking_status=result.booking_status,
    )


@router.get("/methods", response_model=list[PaymentMethodResponse])
def list_payment_methods(db: Session = Depends(get_db)):
    return [
        PaymentMethodResponse(**method)
        for method in PaymentService(db).payment_methods()
    ]


@router.post("/pix", response_model=PixPaymentResponse, status_code=status.HTTP_201_CREATED)
def create_pix_payment(
    request: PixPaymentRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if request.method != PaymentMethod.PIX:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Payment method {request.method.value} is not available",
        )

    try:
        intent = PaymentService(db).create_pix_payment(
            booking_id=request.booking_id,
            amount=request.amount,
            user_id=user_id,
        )
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return PixPaymentResponse(
        payment_id=intent.payment_id,
        booking_id=intent.booking_id,
        pix_code=intent.pix_code,
        qr_code_payload=intent.qr_code_payload,
        amount=intent.amount,
        expires_at=intent.expires_at,
        status=intent.status,
    )


@router.post("/pix/webhook", response_model=ReconciliationResponse)
def pix_webhook(
    payload: PixWebhookRequest = Depends(verified_webhook_payload),
    db: Session = Depends(get_db),
):
    try:
        result = PaymentService(db).reconcile(
            pix_code=payload.pix_code,
            outcome=payload.outcome,
            transaction_id=payload.transaction_id,
        )
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return _reconciliation_response(result)


@router.post("/pix/simulate", response_model=ReconciliationResponse)
def simulate_pix_payment(
    request: PixSimulateRequest,
    db: Session = Depends(get_db),
):
    if os.getenv("APP_ENV", "development") == "production":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Simulation not allowed in production",
        )

    try:
        result = PaymentService(db).simulate_pix_payment(
            pix_code=request.pix_code,
            approve=request.approve,
        )
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return _reconciliation_response(result)


@router.get("/booking/{booking_id}", response_model=PaymentResponse)
def get_payment_by_booking(
    booking_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        payment = PaymentService(db).get_payment_by_booking(booking_id, user_id)
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return payment_response(payment)


@router.get("/{payment_id}/status", response_model=PaymentResponse)
def check_payment_status(
    payment_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        payment = PaymentService(db).check_payment_status(payment_id, user_id)
    except FlightBookingError as exc:
        raise http_error(exc) from exc

    return payment_response(payment)
