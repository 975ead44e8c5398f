"""
Correspondence — Letter Templates for Tenants

- extract_variables: which {{placeholders}} a template uses
- render_template: substitute them from a tenant/lease record
- render_correspondence / render_batch: subject + body, one or many recipients
"""

from correspondence.errors import InvalidTemplateError
from correspondence.models import (
    CorrespondenceTemplate,
    RenderedCorrespondence,
    TemplateType,
    TenantRecord,
)
from correspondence.renderer import (
    TEMPLATE_VARIABLES,
    extract_variables,
    render_batch,
    render_correspondence,
    render_template,
    unsupported_variables,
)

__all__ = [
    "InvalidTemplateError",
    "CorrespondenceTemplate",
    "RenderedCorrespondence",
    "TemplateType",
    "TenantRecord",
    "TEMPLATE_VARIABLES",
    "extract_variables",
    "render_batch",
    "render_correspondence",
    "render_template",
    "unsupported_variables",
]
