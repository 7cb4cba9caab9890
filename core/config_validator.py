# core/config_validator.py

from typing import List
from core.config import settings
from core.errors import ConfigurationError
from core.logging_config import logger
from models.enums import EnforcementMode


def get_enforcement_mode() -> EnforcementMode:
    """
    Current RBAC enforcement mode.
    Unknown values fall back to enforce; production only ever runs enforce.
    """
    raw = (settings.RBAC_ENFORCEMENT or "").strip().lower()
    try:
        mode = EnforcementMode(raw)
    except ValueError:
        logger.warning(f"Unknown RBAC_ENFORCEMENT '{settings.RBAC_ENFORCEMENT}', using enforce")
        mode = EnforcementMode.enforce

    if settings.ENV.lower() == "production" and mode != EnforcementMode.enforce:
        raise ConfigurationError("RBAC must be enforced in production")

    return mode


def validate_required_config() -> List[str]:
    """
    Validate that all required environment variables are set.
    Returns list of missing required variables.
    """
    missing = []

    if not settings.SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not settings.SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")

    return missing


def validate_optional_config() -> List[str]:
    """
    Validate optional but recommended configuration.
    Returns list of missing optional variables (warnings only).
    """
    warnings = []

    if not settings.SUPABASE_ANON_KEY:
        warnings.append("SUPABASE_ANON_KEY (optional but recommended)")
    if settings.RBAC_SYSTEM_TOKEN and len(settings.RBAC_SYSTEM_TOKEN) < 32:
        warnings.append("RBAC_SYSTEM_TOKEN is shorter than 32 characters")

    return warnings


def validate_config_on_startup(require_supabase: bool = True):
    """
    Validate configuration on application startup.
    Raises RuntimeError if critical config is missing and ConfigurationError
    if the RBAC mode is not allowed in this environment.
    Logs warnings for optional config.
    """
    mode = get_enforcement_mode()
    if mode != EnforcementMode.enforce:
        logger.warning(f"🔐 RBAC running in '{mode.value}' mode, denials are NOT enforced")

    missing_required = validate_required_config() if require_supabase else []
    missing_optional = validate_optional_config()

    if missing_required:
        error_msg = f"Missing required environment variables: {', '.join(missing_required)}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    for warning in missing_optional:
        logger.warning(f"Optional configuration missing: {warning}")

    logger.info("Configuration validation passed")
