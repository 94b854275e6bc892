from flask import Flask
from flask_cors import CORS
from flask_sqlalchemy import SQLAlchemy
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate

import logging

db = SQLAlchemy()
jwt = JWTManager()
migrate = Migrate()

logger = logging.getLogger(__name__)


def create_app(config_object='ledgerdesk.config.Config'):
    app = Flask(__name__)
    CORS(app)

    app.config.from_object(config_object)

    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        from .routes import main
        from .auth import auth
        from . import models
        from .store import init_record_store
        app.register_blueprint(main)
        app.register_blueprint(auth, url_prefix='/auth')
        db.create_all()
        init_record_store(app)

    logger.info(f"LedgerDesk started with {app.config['RECORD_STORE']} record store")
    return app
