# Overview: Flask extension instances for the database and schema migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()

# SQLite cannot ALTER constraints in place; batch mode rebuilds the table
migrate = Migrate(render_as_batch=True, compare_type=True)
