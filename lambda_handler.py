"""
AWS Lambda handler for the Agent Books API.

Exposes the same operations as main.py (Flask) to API Gateway events, in
both the REST API and HTTP API v2 formats. Each route is a small function
that takes the path parameters and the parsed event and returns
(status, payload); lambda_handler turns that into the API Gateway response
and maps engine errors to status codes.
"""

import base64
import json
import logging
import os
import re

from agentbooks import DealProcessor
from agentbooks.output import OutputBuilder

logger = logging.getLogger()
logger.setLevel(logging.INFO)

ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# Reused across warm invocations
processor = DealProcessor()
output = OutputBuilder()

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}


def _response(status, payload):
    return {"statusCode": status, "headers": CORS_HEADERS, "body": json.dumps(payload)}


def _request_body(event, required=True):
    """Decode the JSON body of an event. Raises ValueError when it is missing or malformed."""
    body = event.get("body")
    if body in (None, ""):
        if required:
            raise ValueError("No input data provided")
        return {}
    if not isinstance(body, str):
        return body
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    if required and not data:
        raise ValueError("No input data provided")
    return data


# =============================================================================
# Route handlers
# =============================================================================

def handle_health(event):
    return 200, {"status": "healthy", "environment": ENVIRONMENT}


def handle_api_info(event):
    return 200, {
        "status": "ok",
        "message": "Agent Books Commission API",
        "version": "1.0",
        "environment": ENVIRONMENT,
        "runtime": "AWS Lambda",
        "endpoints": {
            "calculate": "/calculate [POST]",
            "profile": "/users/{user_id}/profile [GET, PUT]",
            "deals": "/users/{user_id}/deals [GET, POST]",
            "deal": "/users/{user_id}/deals/{deal_id} [PUT, DELETE]",
            "preview": "/users/{user_id}/deals/preview [POST]",
            "caps": "/users/{user_id}/caps [GET]",
            "dashboard": "/users/{user_id}/dashboard [GET]",
            "health": "/health [GET]",
        },
    }


def handle_calculate(event):
    input_data = _request_body(event)
    amount = (input_data.get("deal") or {}).get("total_deal_amount", "Unknown")
    logger.info(f"Calculating stateless breakdown for deal amount: {amount}")
    return 200, processor.process_from_dict(input_data)


def handle_get_profile(event, user_id):
    return 200, output.build_profile(processor.get_profile(user_id))


def handle_update_profile(event, user_id):
    profile = processor.update_profile(user_id, _request_body(event))
    return 200, output.build_profile(profile)


def handle_list_deals(event, user_id):
    return 200, [output.build_deal(deal) for deal in processor.list_deals(user_id)]


def handle_create_deal(event, user_id):
    deal, breakdown = processor.create_deal(user_id, _request_body(event))
    logger.info(f"Deal {deal.deal_id} created for user {user_id}")
    return 201, {"deal": output.build_deal(deal), "breakdown": output.build(breakdown)}


def handle_preview_deal(event, user_id):
    # Half-filled forms are fine here, so an empty body previews zeros
    breakdown = processor.preview(user_id, _request_body(event, required=False))
    return 200, output.build(breakdown)


def handle_update_deal(event, user_id, deal_id):
    return 200, output.build_deal(processor.update_deal(user_id, deal_id, _request_body(event)))


def handle_delete_deal(event, user_id, deal_id):
    processor.delete_deal(user_id, deal_id)
    return 200, {"status": "deleted", "deal_id": deal_id}


def handle_cap_status(event, user_id):
    return 200, output.build_caps(processor.cap_status(user_id))


def handle_dashboard(event, user_id):
    return 200, processor.dashboard(user_id)


# (method, path pattern, handler); named groups become handler arguments
ROUTES = [
    ("GET", re.compile(r"^/health$"), handle_health),
    ("GET", re.compile(r"^/api$"), handle_api_info),
    ("POST", re.compile(r"^/calculate$"), handle_calculate),
    ("GET", re.compile(r"^/users/(?P<user_id>[^/]+)/profile$"), handle_get_profile),
    ("PUT", re.compile(r"^/users/(?P<user_id>[^/]+)/profile$"), handle_update_profile),
    ("GET", re.compile(r"^/users/(?P<user_id>[^/]+)/deals$"), handle_list_deals),
    ("POST", re.compile(r"^/users/(?P<user_id>[^/]+)/deals$"), handle_create_deal),
    ("POST", re.compile(r"^/users/(?P<user_id>[^/]+)/deals/preview$"), handle_preview_deal),
    ("PUT", re.compile(r"^/users/(?P<user_id>[^/]+)/deals/(?P<deal_id>[^/]+)$"), handle_update_deal),
    ("DELETE", re.compile(r"^/users/(?P<user_id>[^/]+)/deals/(?P<deal_id>[^/]+)$"), handle_delete_deal),
    ("GET", re.compile(r"^/users/(?P<user_id>[^/]+)/caps$"), handle_cap_status),
    ("GET", re.compile(r"^/users/(?P<user_id>[^/]+)/dashboard$"), handle_dashboard),
]


def _match_route(method, path):
    for route_method, pattern, handler in ROUTES:
        match = pattern.match(path)
        if match and route_method == method:
            return handler, match.groupdict()
    return None, None


def lambda_handler(event, context):
    """Main Lambda entry point."""
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    path = event.get("path") or event.get("rawPath", "")
    handler, params = _match_route(http_method, path)
    if handler is None:
        return _response(404, {"error": "Not found", "path": path})

    try:
        status, payload = handler(event, **params)
        return _response(status, payload)

    except ValueError as e:
        logger.error(f"Validation error on {http_method} {path}: {str(e)}")
        return _response(400, {"error": f"Validation error: {str(e)}", "status": "validation_failed"})

    except KeyError as e:
        logger.error(f"Not found on {http_method} {path}: {str(e)}")
        return _response(404, {"error": "Not found", "status": "failed"})

    except Exception as e:
        # Log details but return a generic message
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return _response(500, {"error": "An unexpected error occurred during processing", "status": "failed"})
