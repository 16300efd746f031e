import os

from loguru import logger
from typer import Option

from kdeploy.errors import InvalidNameError
from kdeploy.secrets.naming import derive_secret_name

from . import app


@app.command()
def secret_name(
    name: str = Option("", help="The configured secret name. May reference environment variables."),
    seed: str = Option("", help="The seed for a generated name. A random seed is used if it is empty."),
) -> None:
    """
    Print the name of the image-pull secret that `kdeploy apply` would create.

    Generated names carry a random suffix, so only a configured name is the same on every invocation.
    """

    try:
        print(derive_secret_name(name, seed, os.environ))
    except InvalidNameError as exc:
        logger.error("{}", exc)
        exit(1)
