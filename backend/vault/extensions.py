# Overview: Flask extension instances for the database, migrations and the secret codec.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()

# SQLite cannot ALTER constraints in place; batch mode rebuilds the table
migrate = Migrate(render_as_batch=True, compare_type=True)


def init_secret_codec(app):
    """Build the SecretCodec from app config and keep it in app.extensions."""
    from .services.secret_codec import SecretCodec

    app.extensions["secret_codec"] = SecretCodec.from_config(app.config)
    return app.extensions["secret_codec"]
