"""
FastAPI REST API Module

Exposes the banking service over HTTP: account opening, login, deposits,
withdrawals, transfers, history, reporting and lockout administration.
Routes that touch one account's money or history need the bearer token
issued by /auth/login for that account. Runs on port 8090 by default.
"""

from typing import Optional
from fastapi import FastAPI, HTTPException, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import uvicorn

from .auth import create_access_token, decode_access_token
from .config import get_config
from .errors import ErrorKind, LedgerError
from .logging_config import setup_logging
from .schemas import (
    AccountModel, AmountRequest, ChangePasswordRequest, CreateAccountRequest,
    CustomerModel, LoginRequest, LoginResponse, TransactionListResponse,
    TransactionModel, TransferRequest
)
from .service import BankingService
from .storage import FlatFileRecordStore, RecordStore


ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INSUFFICIENT_BALANCE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INACTIVE: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
}


def get_service(request: Request) -> BankingService:
    return request.app.state.service


def get_store(request: Request) -> RecordStore:
    store = request.app.state.store
    if store is None:
        raise HTTPException(status_code=503, detail="Persistence is not configured")
    return store


# Bearer token security
security = HTTPBearer(auto_error=False)


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    service: BankingService = Depends(get_service)
) -> str:
    """Dependency that validates the bearer token and returns its account number"""
    if not credentials:
        raise HTTPException(
            status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"}
        )
    return decode_access_token(credentials.credentials, service.ledger.config, service.ledger.clock)


def require_account_access(account_number: str,
                           current_account: str = Depends(get_current_account)) -> str:
    """Dependency that only admits the logged-in owner of the path account"""
    if account_number != current_account:
        raise HTTPException(status_code=403, detail="Token does not grant access to this account")
    return account_number


def create_app(service: Optional[BankingService] = None,
               store: Optional[RecordStore] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Bank Ledger API",
        description="Account ledger with bounded history, atomic transfers and login lockout",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.service = service or BankingService.create()
    app.state.store = store

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        return JSONResponse(
            status_code=ERROR_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST),
            content={"detail": exc.to_dict()}
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "bank_ledger_api", "version": "1.0.0"}

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Bank Ledger API",
            "version": "1.0.0",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "accounts": "/accounts",
                "login": "/auth/login",
                "transfers": "/transfers",
                "transactions": "/transactions",
                "customers": "/customers",
                "statistics": "/reports/statistics",
                "security": "/admin/security",
            }
        }

    # Accounts

    @app.post("/accounts", status_code=status.HTTP_201_CREATED)
    def create_account(request: CreateAccountRequest,
                       service: BankingService = Depends(get_service)):
        """Open an account for a new customer"""
        account_number = service.create_account(
            request.to_profile(), request.kind, request.initial_deposit, request.password
        )
        account = service.get_account(account_number)
        return {
            "account_number": account_number,
            "customer_id": account.customer_id,
            "message": "Account created successfully"
        }

    @app.get("/accounts")
    def list_accounts(kind: Optional[str] = None, active_only: bool = False,
                      service: BankingService = Depends(get_service)):
        """List accounts, optionally filtered by kind or active status"""
        if kind:
            accounts = service.get_accounts_by_kind(kind)
        else:
            accounts = service.get_all_accounts()
        if active_only:
            accounts = [account for account in accounts if account.active]
        return {"accounts": [AccountModel.from_account(account).model_dump() for account in accounts]}

    @app.get("/accounts/{account_number}", response_model=AccountModel)
    def get_account(account_number: str = Depends(require_account_access),
                    service: BankingService = Depends(get_service)):
        """Get account details with its customer"""
        account = service.get_account(account_number)
        customer = service.get_account_customer(account_number)
        return AccountModel.from_account(account, customer)

    @app.post("/accounts/{account_number}/deposit", response_model=TransactionModel)
    def deposit(request: AmountRequest,
                account_number: str = Depends(require_account_access),
                service: BankingService = Depends(get_service)):
        return TransactionModel.from_transaction(service.deposit(account_number, request.amount))

    @app.post("/accounts/{account_number}/withdraw", response_model=TransactionModel)
    def withdraw(request: AmountRequest,
                 account_number: str = Depends(require_account_access),
                 service: BankingService = Depends(get_service)):
        return TransactionModel.from_transaction(service.withdraw(account_number, request.amount))

    @app.get("/accounts/{account_number}/transactions", response_model=TransactionListResponse)
    def get_account_transactions(account_number: str = Depends(require_account_access),
                                 service: BankingService = Depends(get_service)):
        """Recent transactions for one account, oldest first"""
        history = service.get_transaction_history(account_number)
        return TransactionListResponse(
            transactions=[TransactionModel.from_transaction(t) for t in history]
        )

    @app.post("/accounts/{account_number}/password")
    def change_password(account_number: str, request: ChangePasswordRequest,
                        service: BankingService = Depends(get_service)):
        service.change_password(account_number, request.current_password, request.new_password)
        return {"message": "Password changed successfully"}

    @app.post("/accounts/{account_number}/deactivate")
    def deactivate_account(account_number: str = Depends(require_account_access),
                           service: BankingService = Depends(get_service)):
        service.deactivate_account(account_number)
        return {"account_number": account_number, "active": False}

    @app.post("/accounts/{account_number}/activate")
    def activate_account(account_number: str = Depends(require_account_access),
                         service: BankingService = Depends(get_service)):
        service.activate_account(account_number)
        return {"account_number": account_number, "active": True}

    # Authentication and transfers

    @app.post("/auth/login", response_model=LoginResponse)
    def login(request: LoginRequest, service: BankingService = Depends(get_service)):
        """Authenticate through the lockout guard and return a bearer token"""
        account = service.login(request.account_number, request.password)
        token, expires_at = create_access_token(
            account.account_number, service.ledger.config, service.ledger.clock
        )
        return LoginResponse(
            access_token=token,
            expires_at=expires_at.isoformat(),
            account=AccountModel.from_account(account)
        )

    @app.post("/transfers")
    def transfer(request: TransferRequest,
                 current_account: str = Depends(get_current_account),
                 service: BankingService = Depends(get_service)):
        """Move money out of the logged-in account"""
        if request.from_account != current_account:
            raise HTTPException(status_code=403, detail="Token does not grant access to this account")
        debit, credit = service.transfer(request.from_account, request.to_account, request.amount)
        return {
            "debit": TransactionModel.from_transaction(debit).model_dump(),
            "credit": TransactionModel.from_transaction(credit).model_dump(),
        }

    # Reporting

    @app.get("/transactions", response_model=TransactionListResponse)
    def list_transactions(transaction_type: Optional[str] = Query(None, alias="type"),
                          service: BankingService = Depends(get_service)):
        """All transactions across accounts, optionally filtered by type"""
        if transaction_type:
            transactions = service.ledger.get_transactions_by_type(transaction_type)
        else:
            transactions = service.get_all_transactions()
        return TransactionListResponse(
            transactions=[TransactionModel.from_transaction(t) for t in transactions]
        )

    @app.get("/customers")
    def list_customers(name: Optional[str] = None,
                       service: BankingService = Depends(get_service)):
        """List customers, or find the first whose name contains ``name``"""
        if name:
            customer = service.find_customer_by_name(name)
            if customer is None:
                raise HTTPException(status_code=404, detail="Customer not found")
            return {"customers": [CustomerModel.from_customer(customer).model_dump()]}
        return {"customers": [CustomerModel.from_customer(c).model_dump()
                              for c in service.get_all_customers()]}

    @app.get("/reports/statistics")
    def get_statistics(service: BankingService = Depends(get_service)):
        return service.get_statistics().to_dict()

    # Administration

    @app.get("/admin/security")
    def get_security_status(service: BankingService = Depends(get_service)):
        return {"accounts": [entry.to_dict() for entry in service.security_status()]}

    @app.post("/admin/security/{account_number}/unlock")
    def unlock_account(account_number: str, service: BankingService = Depends(get_service)):
        service.unlock_account(account_number)
        return {"account_number": account_number, "message": "Account unlocked"}

    @app.post("/admin/security/reset")
    def reset_security(service: BankingService = Depends(get_service)):
        service.reset_security()
        return {"message": "Security data has been reset"}

    @app.post("/admin/save")
    def save(service: BankingService = Depends(get_service),
             store: RecordStore = Depends(get_store)):
        service.save(store)
        return {"message": "Data saved"}

    @app.post("/admin/backup")
    def backup(service: BankingService = Depends(get_service),
               store: RecordStore = Depends(get_store)):
        if not isinstance(store, FlatFileRecordStore):
            raise HTTPException(status_code=400, detail="Store does not support backups")
        path = store.backup(service.ledger.snapshot())
        return {"message": "Backup created", "path": str(path)}

    return app


def build_app() -> FastAPI:
    """Application wired from configuration: logging, flat-file store, saved data"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    store = FlatFileRecordStore(config.data_dir, max_backups=config.max_backups)
    service = BankingService.create(config)
    service.load(store)
    return create_app(service, store)


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server"""
    config = get_config()
    uvicorn.run(
        "bank_ledger.api:build_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level="info"
    )
