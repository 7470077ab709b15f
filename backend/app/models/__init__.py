from backend.app.models.user import User
from backend.app.models.migration import Migration
from backend.app.models.migration_file import MigrationFile
from backend.app.models.deployment_log import DeploymentLog

__all__ = ["User", "Migration", "MigrationFile", "DeploymentLog"]
