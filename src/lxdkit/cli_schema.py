"""Schema describing important fields for CLI table rendering."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

Row = Mapping[str, Any]
ValueExtractor = Callable[[Row], Any]
ValueFormatter = Callable[[Any], str]
SortKey = Callable[[Row], Any]


@dataclass(frozen=True)
class Column:
    """Describe how to pull and format a column for Rich tables."""

    header: str
    keys: tuple[str, ...] = ()
    extractor: ValueExtractor | None = None
    formatter: ValueFormatter | None = None
    justify: str = "left"

    def render(self, row: Row) -> str:
        value: Any | None = None
        for key in self.keys:
            value = row.get(key)
            if value is not None:
                break
        if value is None and self.extractor:
            value = self.extractor(row)
        if value is None:
            return ""
        if self.formatter:
            return self.formatter(value)
        return str(value)


@dataclass(frozen=True)
class TableView:
    """Describe a Rich table for a CLI command."""

    title: str
    columns: tuple[Column, ...]
    sort_key: SortKey | None = None


def _format_resources(resources: Any) -> str:
    if not isinstance(resources, Mapping):
        return ""
    names = []
    for urls in resources.values():
        names.extend(str(url).rstrip("/").rsplit("/", 1)[-1] for url in urls or [])
    return ", ".join(names)


def _format_flag(value: Any) -> str:
    return "yes" if value else "no"


CLI_TABLE_VIEWS: dict[str, TableView] = {
    "containers.list": TableView(
        title="Containers",
        columns=(Column("Name", keys=("name",)),),
        sort_key=lambda row: row.get("name", ""),
    ),
    "containers.show": TableView(
        title="Container",
        columns=(
            Column("Name", keys=("name",)),
            Column("Status", keys=("status",)),
            Column("Architecture", keys=("architecture",)),
            Column("Profiles", keys=("profiles",), formatter=lambda value: ", ".join(value)),
            Column("Ephemeral", keys=("ephemeral",), formatter=_format_flag),
        ),
    ),
    "operations.list": TableView(
        title="Operations",
        columns=(
            Column("ID", keys=("id",)),
            Column("Class", keys=("class",)),
            Column("Status", keys=("status",)),
            Column("Resources", keys=("resources",), formatter=_format_resources),
            Column("Cancelable", keys=("may_cancel",), formatter=_format_flag),
            Column("Error", keys=("err",)),
        ),
        sort_key=lambda row: row.get("created_at") or "",
    ),
}

CLI_TABLE_VIEWS["operations.show"] = TableView(
    title="Operation", columns=CLI_TABLE_VIEWS["operations.list"].columns
)

__all__ = ["CLI_TABLE_VIEWS", "Column", "TableView"]
