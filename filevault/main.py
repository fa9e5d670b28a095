from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import Base, engine
from .deps import extract_bearer
from .errors import FileVaultError, Unauthenticated, Unauthorized
from .logging_setup import setup_logging
from .routers import admin, auth, files, public
from .security import TokenService
from .services.archiver import DirectoryArchiver
from .services.file_ops import FileOps

log = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    'X-Frame-Options': 'DENY',
    'X-Content-Type-Options': 'nosniff',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}

PUBLIC_PATHS = {'/api/auth/login', '/api/auth/register', '/healthz'}
PUBLIC_PREFIXES = ('/api/public/',)
ADMIN_PREFIX = '/api/admin'


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging(settings.log_level)
    Path(settings.base_dir).mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)
    log.info('%s serving %s', settings.app_name, Path(settings.base_dir).resolve())
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.state.token_service = TokenService(settings.jwt_secret, settings.jwt_algorithm, settings.jwt_expire_minutes)
app.state.file_ops = FileOps(
    settings.base_dir,
    archiver=DirectoryArchiver(settings.chunk_size, settings.archive_spool_max_bytes),
    chunk_size=settings.chunk_size,
)


def _parse_cors_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


cors_origins = _parse_cors_origins(settings.cors_origins)
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
        allow_headers=['Authorization', 'Content-Type'],
    )


def _apply_security_headers(response):
    for key, value in _SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


def _error_response(exc: FileVaultError) -> JSONResponse:
    return JSONResponse({'kind': exc.kind, 'detail': exc.message}, status_code=exc.status_code)


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def _is_admin_path(path: str) -> bool:
    return path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + '/')


@app.middleware('http')
async def authentication_gate(request: Request, call_next):
    path = request.url.path
    request.state.principal = None

    token = extract_bearer(request)
    if token and not _is_public(path):
        principal = request.app.state.token_service.validate(token)
        if principal is None:
            log.warning('Rejected invalid token on %s %s', request.method, path)
            return _apply_security_headers(_error_response(Unauthenticated('Invalid token')))
        request.state.principal = principal

    if _is_admin_path(path):
        principal = request.state.principal
        if principal is None:
            return _apply_security_headers(_error_response(Unauthenticated('Missing token')))
        if not principal.is_admin:
            log.warning('Denied admin route %s to %s', path, principal.username)
            return _apply_security_headers(_error_response(Unauthorized('Admin role required')))

    response = await call_next(request)
    return _apply_security_headers(response)


@app.exception_handler(FileVaultError)
async def filevault_error_handler(_request: Request, exc: FileVaultError):
    return _error_response(exc)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.error('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse({'kind': 'internal', 'detail': 'Internal server error. Please try again.'}, status_code=500)


@app.get('/healthz')
def healthz():
    return {'ok': True}


app.include_router(auth.router)
app.include_router(public.router)
app.include_router(files.router)
app.include_router(admin.router)
