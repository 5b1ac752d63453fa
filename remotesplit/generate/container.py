"""
Container artefacts for generated units.

Every unit directory gets a ``requirements.txt``, a ``Dockerfile`` and a
``compose.yaml``, so the default deploy command, ``docker compose up -d
--build``, can ship it as is. Units share the host network, which keeps the
sibling addresses written into the main unit valid inside the containers.
"""

import sys
import textwrap
from importlib import metadata
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .. import __version__

DOCKERFILE = "Dockerfile"
COMPOSE_FILE = "compose.yaml"
REQUIREMENTS_FILE = "requirements.txt"

BASE_IMAGE = f"python:{sys.version_info.major}.{sys.version_info.minor}-slim"


def distribution_name(package_name: str) -> str:
    """Name to install ``package_name`` by, ``PIL`` -> ``pillow``; the import name when unknown."""
    distributions = metadata.packages_distributions().get(package_name)
    return distributions[0] if distributions else package_name


def render_requirements(packages: Iterable[str]) -> str:
    lines: List[str] = [f"remotesplit=={__version__}"]
    for package in packages:
        name = distribution_name(package)
        if name not in lines:
            lines.append(name)
    return "\n".join(lines) + "\n"


def render_dockerfile(command: List[str], port: Optional[int] = None) -> str:
    expose = f"EXPOSE {port}\n" if port is not None else ""
    cmd = ", ".join(f'"{part}"' for part in command)
    return textwrap.dedent(
        f"""
        FROM {BASE_IMAGE}
        ENV PYTHONDONTWRITEBYTECODE=1 \\
            PYTHONUNBUFFERED=1
        WORKDIR /unit
        COPY requirements.txt ./
        RUN python -m pip install --no-cache-dir -r requirements.txt
        COPY . /unit
        """
    ).lstrip() + expose + f"CMD [{cmd}]\n"


def compose_config(name: str) -> Dict[str, Any]:
    return {
        "name": name,
        "services": {
            name: {
                "build": ".",
                "network_mode": "host",
                "restart": "unless-stopped",
            },
        },
    }


def render_compose(name: str) -> str:
    return yaml.safe_dump(compose_config(name), sort_keys=False, default_flow_style=False)


def sibling_artefacts(service_name: str, package_name: str, port: int) -> Dict[str, str]:
    """Files of a sibling unit's image, serving the unit with ``remotesplit serve``."""
    return {
        COMPOSE_FILE: render_compose(service_name),
        REQUIREMENTS_FILE: render_requirements([package_name]),
        DOCKERFILE: render_dockerfile(["remotesplit", "serve", "/unit"], port),
    }


def main_artefacts(name: str, packages: Iterable[str], main_module: str) -> Dict[str, str]:
    """Files of the main unit's image, running the entry shim as a script."""
    return {
        COMPOSE_FILE: render_compose(name),
        REQUIREMENTS_FILE: render_requirements(packages),
        DOCKERFILE: render_dockerfile(["python", main_module]),
    }
