from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from app import config
from app.logging_config import configure_logging
from app.payment import PaymentService
from app.repository import build_repository
from app.routes import router
from app.stripe_service import StripeGateway

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # a misconfigured store fails here, before any request is served
    app.state.payment_service = PaymentService(StripeGateway(), build_repository())
    yield


app = FastAPI(title="Payment Service", lifespan=lifespan)

app.include_router(router)


@app.get("/", response_class=PlainTextResponse)
def index():
    return "Payment Service"


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=config.PORT)
