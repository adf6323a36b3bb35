# FastAPI Application Redirect
# This file redirects to the actual app in the geoattend package

from geoattend.main import app

# This allows uvicorn to find the app when running from root directory
# uvicorn main:app --host 0.0.0.0 --port 8001
