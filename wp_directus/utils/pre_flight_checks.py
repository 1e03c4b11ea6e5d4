import logging

import requests

from .errors import ConfigurationError, PreFlightCheckError

logger = logging.getLogger(__name__)

# (section, key, flag that sets it on the command line)
REQUIRED_SETTINGS = (
    ("directus", "token", "DIRECTUS_TOKEN"),
    ("directus", "folder_id", "--folder"),
    ("migration", "author_id", "--author-id"),
    ("migration", "post_template_id", "--post-template"),
    ("migration", "collection_template_id", "--collection-template"),
)


def check_required_settings(config: dict):
    """
    Raises:
        ConfigurationError: naming every missing setting.
    """
    missing = [
        f"{section}.{key} ({hint})"
        for section, key, hint in REQUIRED_SETTINGS
        if not config.get(section, {}).get(key)
    ]
    if missing:
        raise ConfigurationError("Missing required settings: " + ", ".join(missing))


def check_directus_connection(config: dict, session=None):
    """
    Verifies that Directus answers and accepts the configured token.

    Raises:
        PreFlightCheckError: If the token is rejected or Directus is unreachable.
    """
    directus = config.get("directus", {})
    http = session or requests
    url = f"{directus.get('url', '').rstrip('/')}/users/me"
    headers = {"Authorization": f"Bearer {directus.get('token', '')}"}
    try:
        response = http.get(url, headers=headers, timeout=10)
        response.raise_for_status()
    except requests.HTTPError as e:
        if e.response is not None and e.response.status_code in (401, 403):
            raise PreFlightCheckError("The Directus token is invalid or has expired.")
        raise PreFlightCheckError(f"Unexpected error while checking the Directus API: {e}")
    except requests.RequestException as e:
        raise PreFlightCheckError(f"Network error while connecting to Directus: {e}")


def run_pre_flight_checks(config: dict, *, session=None, check_connection: bool = True):
    """
    Verifies that the migration is fully configured before any batch is
    created.

    Args:
        config: The application configuration dictionary.
        session: Optional ``requests.Session`` used for the connection check.
        check_connection: Skip the Directus round trip when ``False``.

    Raises:
        ConfigurationError: If a required setting is missing.
        PreFlightCheckError: If Directus cannot be used.
    """
    logger.info("Running pre-flight checks...")
    check_required_settings(config)
    if check_connection:
        check_directus_connection(config, session=session)
    logger.info("Pre-flight checks passed successfully.")
