"""Preview of a schema as it would render in every supported mode."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .consts import TEMPLATE_PREVIEW
from .interpreter import LiveForm, RenderTree, applies_to, sorted_fields
from .models import EndpointTypeSchema
from .transfer import export_schema

logger = logging.getLogger(__name__)

DEFAULT_VIEW = "default"


@dataclass
class PreviewView:
    mode: str
    form: LiveForm
    declared_count: int

    @property
    def tree(self) -> RenderTree:
        return self.form.tree

    @property
    def visible_count(self) -> int:
        return self.tree.visible_count


class PreviewHost:
    """One live form per supported mode, plus the raw document."""

    def __init__(
        self,
        schema: EndpointTypeSchema,
        values: Optional[dict[str, Any]] = None,
        default_label: str = DEFAULT_VIEW,
    ):
        self.schema = schema.model_copy(deep=True)
        self.default_label = default_label
        document = self.schema.to_document()
        fields = sorted_fields(document)

        self.views: dict[str, PreviewView] = {}
        if self.schema.supported_modes:
            for mode in self.schema.supported_modes:
                declared = sum(1 for raw in fields if applies_to(raw, mode))
                self.views[mode] = PreviewView(mode, LiveForm(document, mode, values), declared)
        else:
            self.views[default_label] = PreviewView(default_label, LiveForm(document, None, values), len(fields))
        logger.debug(f"Preview of '{self.schema.type_code}' built with {len(self.views)} view(s)")

    @property
    def modes(self) -> list[str]:
        return list(self.views)

    def view(self, mode: Optional[str] = None) -> PreviewView:
        if mode is None:
            return next(iter(self.views.values()))
        try:
            return self.views[mode]
        except KeyError:
            raise KeyError(f"Mode '{mode}' is not supported by '{self.schema.type_code}'") from None

    def raw(self) -> str:
        return export_schema(self.schema)

    @property
    def summary(self) -> dict[str, Any]:
        return {
            "typeName": self.schema.type_name,
            "typeCode": self.schema.type_code,
            "schemaVersion": self.schema.schema_version,
            "fieldCount": len(self.schema.fields),
            "views": {mode: view.visible_count for mode, view in self.views.items()},
        }

    def render_text(self, modes: Optional[list[str]] = None) -> str:
        template_dir = Path(__file__).parent / "templates"
        env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        template = env.get_template(TEMPLATE_PREVIEW)
        views = [self.view(m) for m in modes] if modes else list(self.views.values())
        return template.render(schema=self.schema, views=views, field_count=len(self.schema.fields))
