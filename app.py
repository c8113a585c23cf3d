import logging

from flask import Flask

from config import Config
from db import db


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)

    from blueprints.routes import bp

    app.register_blueprint(bp)

    with app.app_context():
        # Register model tables before create_all
        import models  # noqa: F401

        db.create_all()

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
