import json
import logging
import os
from contextlib import asynccontextmanager

import firebase_admin
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from firebase_admin import credentials

load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("minimarket")


def load_firebase_credentials():
    """
    Load Firebase credentials.

    Priority: FIREBASE_CREDENTIALS_JSON_CONTENT env var (for production)
    Fallback: the JSON file named by FIREBASE_CREDENTIALS_FILE (for local development)
    """
    firebase_cred_json_content = os.environ.get('FIREBASE_CREDENTIALS_JSON_CONTENT')
    if firebase_cred_json_content:
        try:
            cred = credentials.Certificate(json.loads(firebase_cred_json_content))
        except json.JSONDecodeError as e:
            logger.critical("FIREBASE_CREDENTIALS_JSON_CONTENT is set but contains invalid JSON: %s", e)
            raise
        logger.info("Initialized Firebase from FIREBASE_CREDENTIALS_JSON_CONTENT env var.")
        return cred

    local_cred_file = os.environ.get('FIREBASE_CREDENTIALS_FILE', 'firebase-adminsdk.json')
    try:
        cred = credentials.Certificate(local_cred_file)
    except FileNotFoundError:
        logger.critical(
            "Local credentials file '%s' not found. It is required when "
            "FIREBASE_CREDENTIALS_JSON_CONTENT is not set.", local_cred_file
        )
        raise
    logger.info("Initialized Firebase from local JSON file: %s", local_cred_file)
    return cred


def init_firebase() -> None:
    if firebase_admin._apps:
        return

    options = {}
    project_id = os.environ.get('FIREBASE_PROJECT_ID')
    if project_id:
        options['projectId'] = project_id
    firebase_admin.initialize_app(load_firebase_credentials(), options)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_firebase()
    yield


app = FastAPI(title="Mini Market API", lifespan=lifespan)

from minimarket.auth.routers import router as auth_router
from minimarket.products.routers import router as products_router
from minimarket.pos.routers import router as pos_router
from minimarket.sales.routers import router as sales_router
from minimarket.reports.routers import router as reports_router
from minimarket.expenses.routers import router as expenses_router
from minimarket.users.routers import router as users_router
from minimarket.settings.routers import router as settings_router
from minimarket.system.routers import router as system_router

app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(products_router, prefix="/products", tags=["products"])
app.include_router(pos_router, prefix="/pos", tags=["pos"])
app.include_router(sales_router, prefix="/sales", tags=["sales"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])
app.include_router(expenses_router, prefix="/expenses", tags=["expenses"])
app.include_router(users_router, prefix="/users", tags=["users"])
app.include_router(settings_router, prefix="/settings", tags=["settings"])
app.include_router(system_router, prefix="/system", tags=["system"])


@app.get("/")
def read_root():
    """Root endpoint for the API.
    Returns:
        A simple message indicating the API is running.
    """
    return {"message": "Mini Market API"}


if __name__ == "__main__":
    # Set port from environment variable or default to 8000
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8000)))
