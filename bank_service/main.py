import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import List, Optional

from fastapi import FastAPI, Depends, Header, Path, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .config import Settings, get_settings
from .credentials import CredentialStore
from .db import get_session, init_db, make_engine
from .errors import BankError, InternalError
from .ledger import Ledger
from .logging_config import setup_logging
from .models import EntryType, Role
from .tokens import Identity, TokenRegistry, get_tokens, get_user

logger = logging.getLogger(__name__)

# ids are stored as signed 64-bit integers
MAX_ID = 2**63 - 1

VALIDATION_MESSAGES = {
    "/signup": "All fields are required",
    "/login": "Username and password are required",
}


class SignupIn(BaseModel):
    username: str = Field(min_length=1, max_length=30)
    password: str = Field(min_length=1)
    role: Role


class LoginIn(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class MoneyIn(BaseModel):
    userId: int = Field(gt=0, le=MAX_ID)
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class MessageOut(BaseModel):
    message: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    role: Role


class LoginOut(BaseModel):
    message: str
    user: UserOut
    token: str


class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: EntryType
    amount: Decimal
    balance: Decimal


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def ledger_access(request: Request, auth: Optional[str] = Header(default=None, alias="Authorization")):
    # money routes stay open unless explicitly gated
    if request.app.state.settings.require_token_for_ledger:
        get_tokens(request).from_header(auth)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    engine = make_engine(settings)
    init_db(engine)

    app.state.engine = engine
    app.state.credentials = CredentialStore(rounds=settings.bcrypt_rounds)
    app.state.tokens = TokenRegistry()
    app.state.ledger = Ledger()
    logger.info("database ready, serving")

    yield

    app.state.tokens.clear()
    engine.dispose()
    logger.info("shut down")


async def bank_error_handler(request: Request, exc: BankError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(e["loc"][-1] == "role" and e["type"] == "enum" for e in errors):
        message = "Role must be customer or banker"
    else:
        message = VALIDATION_MESSAGES.get(request.url.path, "Missing data.")
    return JSONResponse(status_code=400, content={"message": message})


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("store failure on %s %s", request.method, request.url.path, exc_info=exc)
    err = InternalError()
    return JSONResponse(status_code=err.status_code, content={"message": err.message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(title="bank-service", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BankError, bank_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)

    @app.post("/signup", response_model=MessageOut)
    def signup(
        body: SignupIn,
        session: Session = Depends(get_session),
        credentials: CredentialStore = Depends(get_credentials),
    ):
        credentials.register(session, body.username, body.password, body.role)
        return MessageOut(message="User registered successfully")

    @app.post("/login", response_model=LoginOut)
    def login(
        body: LoginIn,
        session: Session = Depends(get_session),
        credentials: CredentialStore = Depends(get_credentials),
        tokens: TokenRegistry = Depends(get_tokens),
    ):
        user = credentials.verify(session, body.username, body.password)
        token = tokens.issue(user)
        logger.info("login %s", user.username, extra={"action": "login", "user_id": user.id})
        return LoginOut(message="Login successful", user=UserOut.model_validate(user), token=token)

    @app.get("/protected", response_model=UserOut)
    def protected(user: Identity = Depends(get_user)):
        return UserOut(id=user.id, username=user.username, role=user.role)

    @app.post("/deposit", response_class=PlainTextResponse, dependencies=[Depends(ledger_access)])
    def deposit(body: MoneyIn, session: Session = Depends(get_session), ledger: Ledger = Depends(get_ledger)):
        balance = ledger.deposit(session, body.userId, body.amount)
        return f"Deposit successful. New balance: {balance}"

    @app.post("/withdraw", response_class=PlainTextResponse, dependencies=[Depends(ledger_access)])
    def withdraw(body: MoneyIn, session: Session = Depends(get_session), ledger: Ledger = Depends(get_ledger)):
        balance = ledger.withdraw(session, body.userId, body.amount)
        return f"Withdrawal successful. New balance: {balance}"

    @app.get("/transactions/{userId}", response_model=List[EntryOut], dependencies=[Depends(ledger_access)])
    def transactions(userId: int = Path(ge=-MAX_ID - 1, le=MAX_ID), session: Session = Depends(get_session), ledger: Ledger = Depends(get_ledger)):
        return [EntryOut.model_validate(e) for e in ledger.history(session, userId)]

    @app.get("/fetch", response_model=List[UserOut])
    def fetch_customers(session: Session = Depends(get_session), credentials: CredentialStore = Depends(get_credentials)):
        try:
            customers = credentials.list_customers(session)
        except SQLAlchemyError:
            logger.exception("fetching customers failed")
            raise InternalError("Server error while fetching users")
        return [UserOut.model_validate(u) for u in customers]

    return app


app = create_app()
