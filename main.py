from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from agentbooks import DealProcessor
from agentbooks.output import OutputBuilder
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the web client runs on a different origin)
CORS(app)

# Initialize the deal processor (in-memory document store)
processor = DealProcessor()
output = OutputBuilder()


@app.errorhandler(ValueError)
def handle_validation_error(e):
    logger.error(f"Validation error: {str(e)}")
    return jsonify({"error": str(e), "status": "validation_failed"}), 400


@app.errorhandler(KeyError)
def handle_not_found(e):
    logger.error(f"Not found: {str(e)}")
    return jsonify({"error": "Not found", "status": "failed"}), 404


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    # Unexpected errors - log details but return a generic message
    logger.error(f"Processing error: {str(e)}", exc_info=True)
    return jsonify({"error": "An unexpected error occurred during processing", "status": "failed"}), 500


def _json_body():
    body = request.get_json(force=True, silent=True)
    if not body:
        raise ValueError("No input data provided")
    return body


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Agent Books Commission API",
        "version": "1.0",
        "endpoints": {
            "calculate": "/calculate [POST]",
            "profile": "/users/<user_id>/profile [GET, PUT]",
            "deals": "/users/<user_id>/deals [GET, POST]",
            "deal": "/users/<user_id>/deals/<deal_id> [PUT, DELETE]",
            "preview": "/users/<user_id>/deals/preview [POST]",
            "caps": "/users/<user_id>/caps [GET]",
            "expenses": "/users/<user_id>/expenses [GET, POST]",
            "mileage": "/users/<user_id>/mileage [GET, POST]",
            "dashboard": "/users/<user_id>/dashboard [GET]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/calculate", methods=["POST"])
def calculate():
    """Stateless breakdown: profile, deal and history all come in the request"""
    input_data = _json_body()
    logger.info("Calculating stateless breakdown")
    return jsonify(processor.process_from_dict(input_data)), 200


@app.route("/users/<user_id>/profile", methods=["GET"])
def get_profile(user_id):
    return jsonify(output.build_profile(processor.get_profile(user_id))), 200


@app.route("/users/<user_id>/profile", methods=["PUT"])
def update_profile(user_id):
    profile = processor.update_profile(user_id, _json_body())
    return jsonify(output.build_profile(profile)), 200


@app.route("/users/<user_id>/deals", methods=["GET"])
def list_deals(user_id):
    return jsonify([output.build_deal(deal) for deal in processor.list_deals(user_id)]), 200


@app.route("/users/<user_id>/deals/preview", methods=["POST"])
def preview_deal(user_id):
    """Live breakdown for the deal-entry form. Nothing is saved."""
    breakdown = processor.preview(user_id, request.get_json(force=True, silent=True) or {})
    return jsonify(output.build(breakdown)), 200


@app.route("/users/<user_id>/deals", methods=["POST"])
def create_deal(user_id):
    input_data = _json_body()
    logger.info(f"Processing deal for user {user_id}: {input_data.get('address', 'Unknown')}")

    deal, breakdown = processor.create_deal(user_id, input_data)

    logger.info(f"Deal processed successfully: {deal.deal_id}")
    return jsonify({"deal": output.build_deal(deal), "breakdown": output.build(breakdown)}), 201


@app.route("/users/<user_id>/deals/<deal_id>", methods=["PUT"])
def update_deal(user_id, deal_id):
    deal = processor.update_deal(user_id, deal_id, _json_body())
    return jsonify(output.build_deal(deal)), 200


@app.route("/users/<user_id>/deals/<deal_id>", methods=["DELETE"])
def delete_deal(user_id, deal_id):
    processor.delete_deal(user_id, deal_id)
    return jsonify({"status": "deleted", "deal_id": deal_id}), 200


@app.route("/users/<user_id>/caps", methods=["GET"])
def cap_status(user_id):
    return jsonify(output.build_caps(processor.cap_status(user_id))), 200


@app.route("/users/<user_id>/expenses", methods=["GET"])
def list_expenses(user_id):
    return jsonify([output.build_expense(e) for e in processor.list_expenses(user_id)]), 200


@app.route("/users/<user_id>/expenses", methods=["POST"])
def add_expense(user_id):
    expense = processor.add_expense(user_id, _json_body())
    return jsonify(output.build_expense(expense)), 201


@app.route("/users/<user_id>/expenses/<expense_id>", methods=["DELETE"])
def delete_expense(user_id, expense_id):
    processor.delete_expense(user_id, expense_id)
    return jsonify({"status": "deleted", "expense_id": expense_id}), 200


@app.route("/users/<user_id>/mileage", methods=["GET"])
def list_mileage(user_id):
    return jsonify([output.build_mileage(m) for m in processor.list_mileage(user_id)]), 200


@app.route("/users/<user_id>/mileage", methods=["POST"])
def add_mileage(user_id):
    # No distance service is wired in; the client supplies miles
    entry = processor.add_mileage(user_id, _json_body())
    return jsonify(output.build_mileage(entry)), 201


@app.route("/users/<user_id>/dashboard", methods=["GET"])
def dashboard(user_id):
    return jsonify(processor.dashboard(user_id)), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
