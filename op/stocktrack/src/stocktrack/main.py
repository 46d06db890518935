# main.py
import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .auth import AuthService
from .db import Database
from .errors import AppError, InternalError, NotFound
from .filings import FilingsClient
from .models import (CredentialsRequest, HoldingIn, LoginResponse, RegisterResponse,
                     SearchPage, StockIn, UserPublic)
from .portfolio import PortfolioStore
from .settings import Settings, settings
from .stocks import StockStore, filter_assets, page_window, paginate, rank_results
from .tokens import TokenService
from .users import UserStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def create_app(cfg: Settings | None = None) -> FastAPI:
    cfg = cfg or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        configure_logging(cfg.LOG_LEVEL)
        if not cfg.JWT_SECRET:
            raise RuntimeError("JWT_SECRET is not configured")
        db = Database(cfg.DB_PATH)
        db.init_schema()
        users = UserStore(db)
        tokens = TokenService(cfg.JWT_SECRET, cfg.TOKEN_TTL_SECONDS, cfg.JWT_ALGORITHM)
        app.state.db = db
        app.state.auth = AuthService(users, tokens, cfg.BCRYPT_ROUNDS)
        app.state.stocks = StockStore(db)
        app.state.portfolio = PortfolioStore(db)
        app.state.filings = FilingsClient(cfg.FILINGS_ALLOWED_HOSTS, cfg.POLYGON_API_KEY)
        logger.info("%s started", cfg.APP_NAME)
        yield
        # Shutdown
        db.close()

    app = FastAPI(title=cfg.APP_NAME, lifespan=lifespan)
    app.state.settings = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status, content=exc.to_dict())

    @app.exception_handler(sqlite3.Error)
    async def db_error_handler(request: Request, exc: sqlite3.Error):
        logger.error("database error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        err = InternalError()
        return JSONResponse(status_code=err.status, content=err.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid')}" if field else "Invalid input"
        return JSONResponse(status_code=400, content={"error": message})

    register_routes(app)
    return app


def get_auth(request: Request) -> AuthService:
    return request.app.state.auth

def get_stocks(request: Request) -> StockStore:
    return request.app.state.stocks

def get_portfolio(request: Request) -> PortfolioStore:
    return request.app.state.portfolio

def get_filings(request: Request) -> FilingsClient:
    return request.app.state.filings

def _stocks_failure(e: sqlite3.Error) -> InternalError:
    logger.error("stock catalogue query failed: %s", e, exc_info=True)
    return InternalError("Failed to fetch stocks.", key="message", envelope=True)

def current_user_id(authorization: str | None = Header(default=None),
                    auth: AuthService = Depends(get_auth)) -> str:
    # same checks as /api/auth/me, including the user still existing
    return auth.verify_session(authorization)["id"]


def register_routes(app: FastAPI) -> None:

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    # --------------------- AuthN core ----------------------

    @app.post("/api/auth/register", response_model=RegisterResponse, status_code=201)
    def register(payload: CredentialsRequest, auth: AuthService = Depends(get_auth)):
        _, token = auth.register(payload.email, payload.password)
        return RegisterResponse(message="User registered successfully", token=token)

    @app.post("/api/auth/login", response_model=LoginResponse)
    def login(payload: CredentialsRequest, auth: AuthService = Depends(get_auth)):
        identity, token = auth.login(payload.email, payload.password)
        return LoginResponse(message="Login successful", token=token, **identity)

    @app.get("/api/auth/me", response_model=UserPublic, response_model_exclude_none=True)
    def me(authorization: str | None = Header(default=None),
           auth: AuthService = Depends(get_auth)):
        return UserPublic(**auth.verify_session(authorization))

    # ----------------------- stocks ------------------------

    @app.get("/api/stocks/allStocks")
    def all_stocks(stocks: StockStore = Depends(get_stocks)):
        try:
            return {"success": True, "data": stocks.list_all()}
        except sqlite3.Error as e:
            raise _stocks_failure(e) from e

    @app.post("/api/stocks", status_code=201)
    def add_stock(payload: StockIn, stocks: StockStore = Depends(get_stocks)):
        return {"success": True, "data": stocks.add(payload.to_record())}

    @app.get("/api/stocks/search")
    async def search_stocks(request: Request,
                            q: str = "",
                            page: int = Query(default=1),
                            stocks: StockStore = Depends(get_stocks)):
        per_page = request.app.state.settings.ITEMS_PER_PAGE
        try:
            assets = await run_in_threadpool(stocks.list_all)
        except sqlite3.Error as e:
            raise _stocks_failure(e) from e
        matches = await run_in_threadpool(filter_assets, q, assets)
        result = paginate(rank_results(q, matches), page, per_page)
        data = SearchPage(pageNumbers=page_window(result["page"], result["totalPages"]), **result)
        return {"success": True, "data": data.model_dump()}

    @app.get("/api/stocks/filings/{url:path}")
    async def filing(url: str, filings: FilingsClient = Depends(get_filings)):
        return {"data": await filings.fetch(url)}

    # ---------------------- portfolio ----------------------

    @app.get("/api/portfolio")
    def portfolio(user_id: str = Depends(current_user_id),
                  store: PortfolioStore = Depends(get_portfolio)):
        return {"success": True, "data": store.aggregate(user_id)}

    @app.post("/api/portfolio", status_code=201)
    def add_holding(payload: HoldingIn,
                    user_id: str = Depends(current_user_id),
                    store: PortfolioStore = Depends(get_portfolio)):
        holding = store.add_holding(
            user_id,
            symbol=payload.symbol,
            shares=payload.shares,
            cost_per_share=payload.costPerShare,
            cost_in_eur=payload.costInEUR,
            trading_currency=payload.tradingCurrency,
            purchase_date=payload.purchaseDate.isoformat(),
            notes=payload.notes,
        )
        return {"success": True, "data": holding}

    @app.get("/api/portfolio/{symbol}")
    def portfolio_symbol(symbol: str,
                         user_id: str = Depends(current_user_id),
                         store: PortfolioStore = Depends(get_portfolio)):
        return {"success": True, "data": store.symbol_summary(user_id, symbol)}

    @app.delete("/api/portfolio/{symbol}/{holding_id}")
    def remove_holding(symbol: str, holding_id: str,
                       user_id: str = Depends(current_user_id),
                       store: PortfolioStore = Depends(get_portfolio)) -> Dict[str, Any]:
        if not store.remove_holding(user_id, symbol, holding_id):
            raise NotFound("Holding not found", key="message")
        return {"success": True}


app = create_app()


def serve() -> None:
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
