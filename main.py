from flask import Flask, request, jsonify
from flask_cors import CORS
from totals_engine import TotalsProcessor
import os
import logging

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes (the back-office SPA calls the API from the browser)
CORS(app)

# Initialize the totals processor (stateless, safe to share)
processor = TotalsProcessor()


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Deal Totals API",
        "version": "1.0",
        "endpoints": {
            "compute_totals": "/compute_totals [POST]",
            "compute_totals_rules": "/compute_totals/rules [POST]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/compute_totals", methods=["POST"])
def compute_totals():
    """
    Compute deal totals from unit prices, fees and percent/fixed tax presets
    """
    return _handle(processor.process_from_dict, "flat")


@app.route("/compute_totals/rules", methods=["POST"])
def compute_totals_rules():
    """
    Compute deal totals from switch-driven tax preset rules
    """
    return _handle(processor.process_rules_from_dict, "rules")


def _handle(compute, mode):
    try:
        # Get input data
        input_data = request.get_json(force=True, silent=True)

        if input_data is None:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        if not isinstance(input_data, dict):
            return jsonify({
                "error": "Request body must be a JSON object",
                "status": "validation_failed"
            }), 400

        unit_count = len(input_data.get("unitPrices", input_data.get("unit_prices", [])) or [])
        logger.info(f"Computing {mode} totals for {unit_count} unit(s)")

        result = compute(input_data)

        logger.info(f"Totals computed: total_due={result['total_due']}")

        return jsonify(result), 200

    except ValueError as e:
        # Validation and configuration errors from engine
        logger.error(f"Validation error: {str(e)}")
        return jsonify({
            "error": str(e),
            "status": "validation_failed"
        }), 400

    except Exception as e:
        # Unexpected errors
        logger.error(f"Processing error: {str(e)}", exc_info=True)
        return jsonify({
            "error": "An unexpected error occurred during processing",
            "status": "failed"
        }), 500


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
