# storefront/functions/cors.py
from flask import current_app

CORS_HEADERS = {
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS, PUT, DELETE",
}


def cors_headers() -> dict:
    headers = dict(CORS_HEADERS)
    headers["Access-Control-Allow-Origin"] = current_app.config.get("CORS_ALLOW_ORIGIN", "*")
    return headers


def apply_cors(resp):
    for k, v in cors_headers().items():
        resp.headers.setdefault(k, v)
    return resp
