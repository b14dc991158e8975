"""
asgi.py -- ASGI entry point for the SSO service.

Run with:  uvicorn asgi:app --reload

Settings are read from the environment (and .env) when this module is
imported. Run `python main.py migrate` before the first start.
"""

from api.main import create_app

app = create_app()
