"""
Derivation of valid Kubernetes names for the image-pull secrets that are created for a run.
"""

from collections.abc import Mapping
import re
import secrets
import string
import uuid

from kdeploy.errors import InvalidNameError
from kdeploy.tools.envsubst import expand_variables

NAME_LENGTH_LIMIT = 63
""" The maximum length of a DNS-1123 label. """

NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
""" A DNS-1123 label. """

SECRET_NAME_PREFIX = "kdeploy-"

RANDOM_SUFFIX_LENGTH = 8

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_INVALID_CHARS = re.compile(r"[^0-9a-zA-Z]")


def derive_secret_name(configured_name: str, default_seed: str, variables: Mapping[str, str] | None = None) -> str:
    """
    Return the name of the secret to create.

    If *configured_name* is not empty after expanding *variables*, it is validated and returned as-is. Otherwise a
    name is generated from *default_seed* (or a random UUID if the seed is blank): the seed is lowercased, characters
    other than letters and digits are replaced with `-`, and the result is prefixed with #SECRET_NAME_PREFIX,
    truncated to #NAME_LENGTH_LIMIT and suffixed with up to 8 random characters.

    Raises:
        InvalidNameError: If the configured name is too long or not a valid DNS-1123 label.
    """

    name = expand_variables(configured_name or "", variables or {}).strip()
    if name:
        if len(name) > NAME_LENGTH_LIMIT:
            raise InvalidNameError(name, f"Secret name is longer than {NAME_LENGTH_LIMIT} characters")
        if not NAME_PATTERN.match(name):
            raise InvalidNameError(name, "Secret name is not a valid DNS-1123 label")
        return name

    seed = default_seed if default_seed and default_seed.strip() else str(uuid.uuid4())
    name = (SECRET_NAME_PREFIX + _INVALID_CHARS.sub("-", seed.lower()))[:NAME_LENGTH_LIMIT]
    suffix_length = min(RANDOM_SUFFIX_LENGTH, NAME_LENGTH_LIMIT - len(name))
    name += "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(suffix_length))

    if name.endswith("-"):
        name = name[:-1] + "a"
    return name
