"""
Environment display labels.

Usage:
    from environment import resolve_env_label

    label = resolve_env_label(os.getenv('TARGET_ENV'), os.getenv('BASE_URL'))
"""

from typing import Optional

DEFAULT_ENV_LABEL = 'ENV'


def resolve_env_label(target_env: Optional[str] = None, base_url: Optional[str] = None) -> str:
    """
    Resolve the environment label shown in report headers.

    An explicit target environment wins. Otherwise the base URL is inspected
    for "dev" or "prod"; anything else gets the generic label.

    Examples:
        >>> resolve_env_label('staging', 'https://app.example.com')
        'STAGING'
        >>> resolve_env_label('', 'https://dev.example.com')
        'DEV'
        >>> resolve_env_label(None, None)
        'ENV'
    """
    target = (target_env or '').strip().lower()
    if target:
        return target.upper()

    base = (base_url or '').lower()
    if 'dev' in base:
        return 'DEV'
    if 'prod' in base:
        return 'PROD'
    return DEFAULT_ENV_LABEL
