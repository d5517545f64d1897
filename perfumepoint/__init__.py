import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from perfumepoint.core.config import Config
from perfumepoint.db.database import AsyncSessionLocal, init_db
from perfumepoint.exceptions import (
    create_exception_handler,
    AccessTokenRequiredException,
    InvalidTokenException,
    UserNotFoundException,
)
from perfumepoint.routers.cart import router as cart_router
from perfumepoint.routers.discounts import router as discounts_router
from perfumepoint.routers.orders import router as orders_router
from perfumepoint.services.order_status_simulator import OrderStatusSimulator

logging.basicConfig(
    level=Config.LOG_LEVEL or "INFO",
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

api_version = "v1"
swagger_docs_url = f"/api/{api_version}/docs"
redoc_docs_url = f"/api/{api_version}/redoc"
openapi_url = f"/api/{api_version}/openapi.json"


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    simulator = None
    if Config.ORDER_SIMULATOR_ENABLED:
        simulator = OrderStatusSimulator(AsyncSessionLocal)
        simulator.start()
    app.state.order_status_simulator = simulator

    yield

    if simulator is not None:
        await simulator.stop()


app = FastAPI(
    docs_url=swagger_docs_url,
    redoc_url=redoc_docs_url,
    openapi_url=openapi_url,
    title="Perfume Point API",
    description="Order, checkout and refund API of the Perfume Point online perfume store.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        'http://localhost',
        'http://localhost:3000',
        f'https://{Config.DOMAIN}',
    ],
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'],
    allow_headers=["*"],
)

# Register endpoints
app.include_router(cart_router, prefix=f'/api/{api_version}/cart', tags=["Cart"])
app.include_router(orders_router, prefix=f'/api/{api_version}/orders', tags=['Orders'])
app.include_router(discounts_router, prefix=f'/api/{api_version}/discounts', tags=["Discounts"])

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

# Auth-related exception handlers
app.add_exception_handler(AccessTokenRequiredException, create_exception_handler(401, "Authentication required!"))
app.add_exception_handler(InvalidTokenException, create_exception_handler(401, "Invalid or expired token provided!"))
app.add_exception_handler(UserNotFoundException, create_exception_handler(404, "User not found."))
