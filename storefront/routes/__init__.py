"""Routes package for the storefront application."""

from flask import jsonify


def register_routes(app):
    """Register all route blueprints with the application."""
    from .conversations import conversations_bp
    from .items import categories_bp, items_bp
    from .me import me_bp, users_bp
    from .notifications import notifications_bp
    from .purchases import purchases_bp

    app.register_blueprint(categories_bp, url_prefix='/api/categories')
    app.register_blueprint(items_bp, url_prefix='/api/items')
    app.register_blueprint(purchases_bp, url_prefix='/api')
    app.register_blueprint(conversations_bp, url_prefix='/api')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(me_bp, url_prefix='/api/me')
    app.register_blueprint(users_bp, url_prefix='/api/users')

    @app.route('/api/health', methods=['GET'])
    def api_health():
        return jsonify({'status': 'ok', 'upstream': app.config['MARKETPLACE_API_URL']}), 200
