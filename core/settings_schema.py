from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping

# None: scalar value, "*": free-form section, set: section with a fixed key list.
_ALLOWED_STRUCTURE: Dict[str, Any] = {
    "backup": {
        "dir",
        "calibre_db_path",
        "backup_calibre",
        "max_folders",
        "primary_name",
        "secondary_name",
    },
    "logging": "*",
    "database_path": None,
    "working_dir": None,
    "version": None,
}


@dataclass(slots=True)
class SettingsValidator:
    schema: Mapping[str, Any]

    def unknown_keys(self, payload: Mapping[str, Any]) -> Iterable[str]:
        return sorted(self._walk(payload, self.schema, prefix=""))

    def _walk(self, payload: Mapping[str, Any], schema: Mapping[str, Any], *, prefix: str) -> Iterator[str]:
        for key, value in payload.items():
            if key not in schema:
                yield f"{prefix}{key}"
                continue
            rule = schema[key]
            if rule is None or rule == "*" or not isinstance(value, Mapping):
                continue
            if isinstance(rule, set):
                yield from (f"{prefix}{key}.{sub}" for sub in value if sub not in rule)
            elif isinstance(rule, Mapping):
                yield from self._walk(value, rule, prefix=f"{prefix}{key}.")


SETTINGS_VALIDATOR = SettingsValidator(_ALLOWED_STRUCTURE)

__all__ = ["SETTINGS_VALIDATOR", "SettingsValidator"]
