import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from consultation.core import config
from consultation.database import Base, engine, ensure_identity_schema
from consultation.models import user  # noqa: F401
from consultation.routes import appointment_routes, availability_routes, notification_routes, queue_routes
from consultation.scheduling.engine import SchedulingEngine

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Consultation Scheduler')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.state.engine = SchedulingEngine()

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_identity_schema()
    except SQLAlchemyError:
        logger.exception('Identity database initialization failed. Check DATABASE_URL.')


@app.get('/')
def root():
    return {'status': 'Consultation Scheduler API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(queue_routes.router, prefix='/queues')
app.include_router(notification_routes.router, prefix='/notifications')
