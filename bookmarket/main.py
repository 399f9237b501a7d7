import logging

import stripe
from fastapi import Depends, FastAPI, Request, Header
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from bookmarket import config
from bookmarket.database import Base, engine
from bookmarket.errors import ErrorKind, ServiceError, ValidationError, STATUS_CODES
from bookmarket.payments import PaymentReconciler
from bookmarket.routes import router
from bookmarket.stores import OrderStore, get_order_store
from bookmarket.stripe_service import outcome_from_session

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Bookmarket API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.CLIENT_DOMAIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)

Base.metadata.create_all(bind=engine)


def error_response(status_code: int, kind: ErrorKind, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind.value, "message": message})


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.kind.value, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    logger.warning("%s %s rejected (validation): %s", request.method, request.url.path, message)
    return error_response(STATUS_CODES[ValidationError.kind], ValidationError.kind, message)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("%s %s database failure", request.method, request.url.path, exc_info=exc)
    return error_response(500, ErrorKind.SERVER, str(exc))


@app.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    orders: OrderStore = Depends(get_order_store),
):
    payload = await request.body()

    try:
        event = stripe.Webhook.construct_event(
            payload,
            stripe_signature,
            config.STRIPE_WEBHOOK_SECRET
        )
    except ValueError:
        raise ValidationError("Invalid payload")
    except stripe.SignatureVerificationError:
        raise ValidationError("Invalid signature")

    if event["type"] == "checkout.session.completed":
        outcome = outcome_from_session(event["data"]["object"])
        # Database work stays off the event loop
        await run_in_threadpool(PaymentReconciler(orders).apply, outcome)

    return {"ok": True}
