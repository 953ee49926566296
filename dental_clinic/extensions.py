from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Shared database and migration instances
db = SQLAlchemy()
migrate = Migrate()
