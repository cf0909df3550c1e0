import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from .routes import router
from .core import kafka_startup, redis_startup, init_metrics, shutdown_connections
from .errors import ConnectHubError
from .file_storage import UPLOAD_DIR
from .models import init_db
import logging
from pythonjsonlogger.json import JsonFormatter

# setup structured logging
logger = logging.getLogger('connecthub')
handler = logging.StreamHandler()
formatter = JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)
logger.setLevel(os.getenv('LOG_LEVEL', 'INFO'))

app = FastAPI(title="ConnectHub API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv('CORS_ORIGINS', '*').split(','),
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(router, prefix="/api")
app.mount('/uploads', StaticFiles(directory=UPLOAD_DIR), name='uploads')

@app.get('/healthz')
async def healthz():
    return {'status': 'ok'}

@app.exception_handler(ConnectHubError)
async def connecthub_error_handler(request: Request, exc: ConnectHubError):
    logger.info({'msg': 'request_rejected', 'path': request.url.path,
                 'status': exc.status_code, 'detail': exc.message})
    return JSONResponse(status_code=exc.status_code, content={'detail': exc.message})

@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
    response = await call_next(request)
    logger.info({'msg': 'request_end', 'path': request.url.path, 'status': response.status_code})
    return response

@app.on_event("startup")
async def startup():
    await init_db()
    # Optional infrastructure must not keep the API from starting
    try:
        await redis_startup()
    except Exception as e:
        logger.warning({'msg': 'redis_start_failed', 'error': str(e)})
    try:
        await kafka_startup()
    except Exception as e:
        logger.warning({'msg': 'kafka_start_failed', 'error': str(e)})
    init_metrics()

@app.on_event("shutdown")
async def shutdown():
    await shutdown_connections()
