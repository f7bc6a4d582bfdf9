"""
REST API for the order book relayer.

This module provides HTTP endpoints for order book and order queries,
order and offer submission, and service statistics.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS
from sqlalchemy.exc import IntegrityError

from ..config.settings import Settings, get_settings
from ..core.errors import ValidationError
from ..core.offer import OFFER_TYPES
from ..core.offer_service import OfferService
from ..core.order_types import API_KEY_HEADER
from ..core.orderbook_service import OrderBookService
from ..core.pool_registry import PoolNotFoundError
from ..utils.performance import PerformanceMonitor
from .validators import (
    parse_offer_filter,
    parse_order_hashes,
    validate_book_request,
    validate_offer_kind,
    validate_order_config_request,
    validate_order_payload,
    validate_orders_payload,
    validate_orders_query,
    validate_pagination,
)

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(
    orderbook_service: OrderBookService,
    offer_service: OfferService,
    settings: Optional[Settings] = None,
    performance_monitor: Optional[PerformanceMonitor] = None,
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        orderbook_service: Service answering order routes
        offer_service: Service answering offer routes
        settings: Relayer settings, the global settings when omitted
        performance_monitor: Source for GET /statistics

    Returns:
        Configured Flask application
    """
    settings = settings or get_settings()
    app = Flask(__name__)
    if settings.enable_cors:
        CORS(app, origins=settings.cors_origins)

    register_routes(app, orderbook_service, offer_service, performance_monitor)

    logger.info("REST API initialized")
    return app


def register_routes(
    app: Flask,
    orderbook_service: OrderBookService,
    offer_service: OfferService,
    performance_monitor: Optional[PerformanceMonitor] = None,
) -> None:
    """Register all API routes."""

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': VERSION
        })

    @app.route('/', methods=['GET'])
    def get_order_book():
        """
        Get both sides of the book for a token pair.

        Query parameters:
        - baseToken, quoteToken: Token addresses (required)
        - page, perPage: Pagination, applied to each side
        """
        try:
            is_valid, error, params = validate_book_request(request.args)
            if not is_valid:
                return jsonify({'error': error}), 400

            book = orderbook_service.get_order_book(
                params['page'], params['per_page'], params['base_token'], params['quote_token']
            )
            return jsonify(book.to_dict()), 200

        except Exception as e:
            logger.error(f"Error getting order book: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/prices', methods=['GET'])
    def get_prices():
        """
        Get prices of orders by hash.

        Query parameters:
        - orderHashes: Comma-separated order hashes (required)
        """
        try:
            is_valid, error, order_hashes = parse_order_hashes(request.args.get('orderHashes'))
            if not is_valid:
                return jsonify({'error': error}), 400

            return jsonify(orderbook_service.get_order_prices(order_hashes)), 200

        except Exception as e:
            logger.error(f"Error getting order prices: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/orders', methods=['GET'])
    def get_orders():
        """
        Query orders by field values.

        Query parameters:
        - page, perPage: Pagination
        - makerToken, takerToken, maker, taker, sender, feeRecipient, poolId: Field filters
        - trader: Match orders where this address is maker or taker
        - isUnfillable: Include unfillable persistent orders (requires maker)
        """
        try:
            is_valid, error, params = validate_orders_query(request.args)
            if not is_valid:
                return jsonify({'error': error}), 400

            orders = orderbook_service.get_orders(
                params['page'],
                params['per_page'],
                params['order_field_filters'],
                is_unfillable=params['is_unfillable'],
                trader=params['trader'],
            )
            return jsonify(orders.to_dict()), 200

        except ValidationError as e:
            return jsonify(e.to_dict()), 400
        except Exception as e:
            logger.error(f"Error getting orders: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/fee_recipients', methods=['GET'])
    def get_fee_recipients():
        """
        List the relayer's fee recipient addresses.

        Query parameters:
        - page, perPage: Pagination
        """
        try:
            is_valid, error, paging = validate_pagination(request.args.get('page'), request.args.get('perPage'))
            if not is_valid:
                return jsonify({'error': error}), 400

            recipients = orderbook_service.get_fee_recipients(*paging)
            return jsonify(recipients.to_dict(serialize=str)), 200

        except Exception as e:
            logger.error(f"Error getting fee recipients: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/order_config', methods=['POST'])
    def get_order_config():
        """
        Get the field values the relayer requires on an order.

        Request body: makerToken, takerToken, maker and takerAmount of the
        order being created.
        """
        try:
            is_valid, error, taker_amount = validate_order_config_request(request.get_json(silent=True))
            if not is_valid:
                return jsonify({'error': error}), 400

            return jsonify(orderbook_service.get_order_config(taker_amount)), 200

        except Exception as e:
            logger.error(f"Error getting order config: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/order/<order_hash>', methods=['GET'])
    def get_order(order_hash: str):
        """Get an order by hash, active or persistent."""
        try:
            api_order = orderbook_service.get_order_by_hash(order_hash)
            if api_order is None:
                return jsonify({'error': 'Order not found'}), 404

            return jsonify(api_order.to_dict()), 200

        except Exception as e:
            logger.error(f"Error getting order {order_hash}: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/order', methods=['POST'])
    def submit_order():
        """
        Submit a single signed order.

        Request body: signed order in wire format.
        """
        try:
            is_valid, error, order = validate_order_payload(request.get_json(silent=True))
            if not is_valid:
                return jsonify({'error': error}), 400

            result = orderbook_service.add_order(order)
            logger.info(f"Order submitted: {order.get_hash()}")
            return jsonify(result.to_dict()), 200

        except Exception as e:
            logger.error(f"Error submitting order: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/orders', methods=['POST'])
    def submit_orders():
        """
        Submit a batch of signed orders.

        Request body: JSON array of signed orders.
        """
        try:
            is_valid, error, orders = validate_orders_payload(request.get_json(silent=True))
            if not is_valid:
                return jsonify({'error': error}), 400

            result = orderbook_service.add_orders(orders)
            logger.info(f"Batch of {len(orders)} orders submitted")
            return jsonify(result.to_dict()), 200

        except Exception as e:
            logger.error(f"Error submitting orders: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/order/persistent', methods=['POST'])
    def submit_persistent_order():
        """
        Submit a signed order and keep a durable copy once accepted.

        Requires an allow-listed API key in the 0x-api-key header.
        """
        try:
            api_key = request.headers.get(API_KEY_HEADER)
            if not orderbook_service.is_allowed_persistent_orders(api_key):
                logger.warning("Rejected persistent order from unlisted API key")
                return jsonify({'error': 'API key is not allowed to post persistent orders'}), 403

            is_valid, error, order = validate_order_payload(request.get_json(silent=True))
            if not is_valid:
                return jsonify({'error': error}), 400

            result = orderbook_service.add_persistent_orders([order])
            return jsonify(result.to_dict()), 200

        except Exception as e:
            logger.error(f"Error submitting persistent order: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/offers', methods=['GET'])
    def list_offers():
        """
        List offers of one kind.

        Query parameters:
        - offerType: createContingentPool, addLiquidity or removeLiquidity (required)
        - page, perPage: Pagination
        - maker, taker, makerDirection, referenceAsset, collateralToken,
          dataProvider, permissionedERC721Token, poolId: Optional filters
        """
        try:
            is_valid, error, kind = validate_offer_kind(request.args.get('offerType'))
            if not is_valid:
                return jsonify({'error': error}), 400

            is_valid, error, paging = validate_pagination(request.args.get('page'), request.args.get('perPage'))
            if not is_valid:
                return jsonify({'error': error}), 400

            offers = offer_service.list_offers(kind, parse_offer_filter(request.args), *paging)
            return jsonify(offers.to_dict()), 200

        except Exception as e:
            logger.error(f"Error listing offers: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/offer/<offer_hash>', methods=['GET'])
    def get_offer(offer_hash: str):
        """Get an offer by hash."""
        try:
            is_valid, error, kind = validate_offer_kind(request.args.get('offerType'))
            if not is_valid:
                return jsonify({'error': error}), 400

            offer = offer_service.get_offer_by_hash(kind, offer_hash)
            if offer is None:
                return jsonify({'error': 'Offer not found'}), 404

            return jsonify(offer.to_dict()), 200

        except Exception as e:
            logger.error(f"Error getting offer {offer_hash}: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/offer', methods=['POST'])
    def submit_offer():
        """
        Submit a signed offer.

        Query parameters:
        - offerType: Offer kind (required)

        Request body: offer in wire format.
        """
        try:
            is_valid, error, kind = validate_offer_kind(request.args.get('offerType'))
            if not is_valid:
                return jsonify({'error': error}), 400

            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({'error': 'Request body must be a JSON object'}), 400

            try:
                offer = OFFER_TYPES[kind].from_dict(data)
            except ValueError as e:
                return jsonify({'error': str(e)}), 400

            offer_hash = offer_service.submit_offer(kind, offer)
            return jsonify({'offerHash': offer_hash}), 200

        except PoolNotFoundError as e:
            return jsonify({'error': str(e)}), 400
        except IntegrityError:
            return jsonify({'error': 'Offer already exists'}), 409
        except Exception as e:
            logger.error(f"Error submitting offer: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.route('/statistics', methods=['GET'])
    def get_statistics():
        """Get service latency, counters and process statistics."""
        try:
            if performance_monitor is None:
                return jsonify({'enabled': False}), 200

            return jsonify(performance_monitor.get_summary()), 200

        except Exception as e:
            logger.error(f"Error getting statistics: {str(e)}")
            return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal server error: {str(error)}")
        return jsonify({'error': 'Internal server error'}), 500
