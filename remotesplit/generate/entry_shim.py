"""
Entry shim of the main unit.

The shim installs the client stubs before the application entry is imported,
so every import of a relocated package resolves to its stub, then re-exports
the entry's handlers wrapped to bind the request environment. Run as a script
it calls the entry's ``main()``; a host importing the shim awaits
``shutdown()`` on exit to close the sibling channels.
"""

from typing import Dict, Optional

HANDLER_NAMES = ("handle", "scheduled", "queue")


def generate_entry_shim(
    entry: str,
    stubs: Dict[str, str],
    services: Dict[str, str],
    call_timeout: Optional[float] = None,
) -> str:
    """
    Args:
        entry: Path of the application entry, relative to the shim
        stubs: Relocated package name to stub path, relative to the shim
        services: Binding name to sibling address
        call_timeout: Per-call timeout of the sibling channels
    """
    stub_lines = "".join(f'    "{name}": "{path}",\n' for name, path in stubs.items())
    service_lines = "".join(f'    "{name}": "{address}",\n' for name, address in services.items())
    handler_lines = "\n".join(
        f'{name} = bind_services(getattr(_entry, "{name}", None), SERVICES)'
        for name in HANDLER_NAMES
    )

    return f'''"""Main unit entry point. Generated by remotesplit."""

import os
import sys

from remotesplit.runtime import (
    bind_services,
    close_channels,
    load_entry,
    load_stubs,
    open_channels,
    run_main,
)

_HERE = os.path.dirname(os.path.abspath(__file__))

STUBS = {{
{stub_lines}}}

SERVICES = open_channels({{
{service_lines}}}, timeout={call_timeout!r})

load_stubs(_HERE, STUBS)

_entry = load_entry(os.path.join(_HERE, "{entry}"))

{handler_lines}


async def shutdown():
    await close_channels(SERVICES)


if __name__ == "__main__":
    sys.exit(run_main(_entry, SERVICES))
'''
