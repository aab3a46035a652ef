import os

class BaseConfig:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Leave policy
    CL_ANNUAL_ALLOWANCE = int(os.environ.get("CL_ANNUAL_ALLOWANCE", 30))
    DL_ANNUAL_LIMIT = int(os.environ.get("DL_ANNUAL_LIMIT", 10))
    ALLOW_FUTURE_LEAVE_DATES = os.environ.get("ALLOW_FUTURE_LEAVE_DATES", "false").lower() in ("1","true","yes","on")
    # Scholarship
    DEFAULT_SCHOLARSHIP_AMOUNT = float(os.environ.get("DEFAULT_SCHOLARSHIP_AMOUNT", 30000))
    SCHOLARSHIP_HISTORY_MONTHS = int(os.environ.get("SCHOLARSHIP_HISTORY_MONTHS", 3))

class DevelopmentConfig(BaseConfig):
    # Default to instance/leavedesk.db unless overridden
    @staticmethod
    def database_uri(instance_path: str) -> str:
        db_path = os.environ.get("DATABASE_PATH")
        if db_path:
            return f"sqlite:///{db_path}"
        return "sqlite:///" + os.path.join(instance_path, "leavedesk.db")

class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URI", "sqlite:///:memory:")

class ProductionConfig(BaseConfig):
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URI", "sqlite:///leavedesk.db")
