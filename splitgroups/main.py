import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from splitgroups.config import LOG_LEVEL, SECRET_KEY
from splitgroups.db import init_db
from splitgroups.errors import LedgerError
from splitgroups.auth import router as auth_router
from splitgroups.routes.group import router as group_router
from splitgroups.routes.expense import router as expense_router
from splitgroups.routes.notification import router as notification_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


app = FastAPI(title="Split Groups")

# Session middleware
app.add_middleware(SessionMiddleware, secret_key=SECRET_KEY)

# include routers
app.include_router(auth_router)
app.include_router(group_router)
app.include_router(expense_router)
app.include_router(notification_router)


@app.on_event("startup")
def on_startup():
    init_db()


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.kind})


def run():
    import uvicorn
    uvicorn.run("splitgroups.main:app", host="127.0.0.1", port=8000)
