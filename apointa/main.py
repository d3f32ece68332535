import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from apointa.core import config
from apointa.database import Database
from apointa.routes import appointment_routes, auth_routes, availability_routes, doctor_routes

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part != 'body')
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get('msg')))
    return '; '.join(messages) or 'Invalid request'


def create_app(database: Database | None = None) -> FastAPI:
    """Build the API. The database handle is opened on startup and disposed on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        config.validate_runtime_config()
        db = database or Database(config.DATABASE_URL)
        app.state.database = db
        try:
            db.create_schema()
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        try:
            yield
        finally:
            db.dispose()

    app = FastAPI(title='Apointa API', lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={'detail': {'kind': 'invalid_request', 'message': _describe_validation_errors(exc)}},
        )

    @app.get('/')
    def root():
        return {'status': 'Apointa API running'}

    app.include_router(auth_routes.router, prefix='/auth')
    app.include_router(doctor_routes.router, prefix='/doctors')
    app.include_router(appointment_routes.router, prefix='/appointments')
    app.include_router(availability_routes.router, prefix='/availabilities')

    return app


app = create_app()
