import re
from importlib import resources
from typing import Any, Dict, List

import yaml

_VAR_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def render_str(s: str, vars_map: Dict[str, Any]) -> str:
    def repl(m):
        key = m.group(1)
        return str(vars_map.get(key, m.group(0)))
    return _VAR_RE.sub(repl, s)


def render_docs(text: str, vars_map: Dict[str, Any]) -> List[Any]:
    return list(yaml.safe_load_all(render_str(text, vars_map)))


def read_template(name: str, vars_map: Dict[str, Any]) -> List[Any]:
    text = resources.files("razeedeploy.resources").joinpath(name).read_text(encoding="utf-8")
    return render_docs(text, vars_map)
