"""Applying activation bindings outside godotup.

godotup never edits the caller's environment itself. ``render`` turns
bindings into statements for a shell to evaluate, e.g.::

    eval "$(godotup switch 4.0.3)"
"""

import os
from pathlib import Path
from typing import Iterable, Mapping, Optional

from ..core.activation import GODOT_HOME, Binding
from ..exceptions import FormatError
from ..runtime.store import InstallationStore
from ..versions.models import VersionId

SHELLS = ("sh", "fish", "powershell")


def _quote_sh(value: str) -> str:
    return "'" + value.replace("'", "'\"'\"'") + "'"


def render(bindings: Iterable[Binding], shell: str = "sh") -> str:
    if shell == "sh":
        lines = [f"export {name}={_quote_sh(value)}" for name, value in bindings]
    elif shell == "fish":
        lines = [f"set -gx {name} {_quote_sh(value)}" for name, value in bindings]
    elif shell == "powershell":
        lines = ["$env:{}='{}'".format(name, value.replace("'", "''")) for name, value in bindings]
    else:
        raise ValueError(f"Unsupported shell: {shell}")
    return "\n".join(lines)


def current_from_environ(store: InstallationStore,
                         environ: Optional[Mapping[str, str]] = None) -> Optional[VersionId]:
    """The active version according to ``GODOT_HOME``, if it names an installed version."""
    environ = os.environ if environ is None else environ
    home = environ.get(GODOT_HOME)
    if not home:
        return None
    try:
        version_id = VersionId.parse(Path(home).name, store.platform)
    except FormatError:
        return None
    return version_id if store.is_installed(version_id) else None
