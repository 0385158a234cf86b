import logging
import os

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

load_dotenv()


def create_app(config_name='development', overrides=None):
    app = Flask(__name__)

    # Config
    app.config['MARKETPLACE_API_URL'] = os.getenv('MARKETPLACE_API_URL', 'http://localhost:8080/api')
    app.config['API_TIMEOUT'] = float(os.getenv('API_TIMEOUT', 10))
    app.config['FIREBASE_PROJECT_ID'] = os.getenv('FIREBASE_PROJECT_ID', '')
    app.config['FIREBASE_API_KEY'] = os.getenv('FIREBASE_API_KEY', '')
    app.config['REDIS_URL'] = os.getenv('REDIS_URL')
    app.config['CACHE_TTL_SECONDS'] = int(os.getenv('CACHE_TTL_SECONDS', 30))
    app.config['CORS_ORIGINS'] = os.getenv('CORS_ORIGINS', '*')
    app.config['TESTING'] = config_name == 'testing'

    from storefront.services.api_client import MarketplaceApi
    app.config['API_CLIENT_FACTORY'] = MarketplaceApi

    if overrides:
        app.config.update(overrides)

    if not app.config['TESTING'] and not app.config['FIREBASE_PROJECT_ID']:
        app.logger.warning("FIREBASE_PROJECT_ID not set - signed-in requests will be rejected")

    if config_name != 'testing':
        logging.basicConfig(level=logging.INFO)

    # Initialize extensions
    origins = app.config['CORS_ORIGINS']
    CORS(app, origins=origins if origins == '*' else [o.strip() for o in origins.split(',')])

    from storefront.services.cache import QueryCache
    from storefront.services.redis_client import DismissedStore, get_redis

    redis_client = None if app.config['TESTING'] else get_redis(app.config['REDIS_URL'])
    app.extensions['storefront_cache'] = QueryCache(ttl=app.config['CACHE_TTL_SECONDS'])
    app.extensions['storefront_dismissed'] = DismissedStore(redis_client)

    # Register routes
    from storefront.routes import register_routes
    register_routes(app)

    # Health check
    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200

    return app
