"""Constants shared by the configuration layer."""

__all__ = (
    "BUN_ENV",
    "DEV_MODE_ENV",
    "EXPORT_ENV",
    "LOG_LEVEL_ENV",
    "PROD_ENV",
    "SOCKET_ENV",
    "TRUE_VALUES",
)

TRUE_VALUES = {"True", "true", "1", "yes", "Y", "T"}

DEV_MODE_ENV = "LITESTAR_PAGES_DEV"
EXPORT_ENV = "LITESTAR_PAGES_EXPORT"
SOCKET_ENV = "LITESTAR_PAGES_SOCKET"
PROD_ENV = "LITESTAR_PAGES_PROD"
LOG_LEVEL_ENV = "LITESTAR_PAGES_LOG_LEVEL"
BUN_ENV = "LITESTAR_PAGES_BUN"
