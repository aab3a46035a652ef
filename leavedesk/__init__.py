import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from leavedesk.config import DevelopmentConfig, ProductionConfig, TestingConfig

app = Flask(__name__, instance_relative_config=True)

# Select config based on FLASK_ENV
env = os.environ.get("FLASK_ENV", "development").lower()
if env == "production":
    app.config.from_object(ProductionConfig)
elif env == "testing":
    app.config.from_object(TestingConfig)
else:
    app.config.from_object(DevelopmentConfig)

# Compute DB URI for development using instance path
if env == "development":
    instance_path = app.instance_path
    os.makedirs(instance_path, exist_ok=True)
    app.config['SQLALCHEMY_DATABASE_URI'] = DevelopmentConfig.database_uri(instance_path)

db = SQLAlchemy(app)

# Load DB-backed policy settings (e.g. CL_ANNUAL_ALLOWANCE) into app.config if available
def _parse_setting(val):
    v = str(val).strip()
    low = v.lower()
    if low in ("1", "true", "yes", "on"):
        return True
    if low in ("0", "false", "no", "off"):
        return False
    try:
        return int(v)
    except ValueError:
        pass
    try:
        return float(v)
    except ValueError:
        return v

def load_policy_settings():
    from leavedesk.models import SystemSetting
    for s in SystemSetting.query.all():
        app.config[s.key] = _parse_setting(s.value)

with app.app_context():
    from leavedesk import models  # noqa: F401
    db.create_all()
    load_policy_settings()

from leavedesk import routes  # noqa: E402,F401
