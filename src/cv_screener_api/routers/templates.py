"""Saved job templates of the caller."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from cv_screener_api.deps import CurrentUser, ServicesDep
from cv_screener_core.models.template import JobTemplate, TemplateCreate

router = APIRouter(prefix="/templates", tags=["templates"])


def _payload(template: JobTemplate) -> dict[str, Any]:
    return template.model_dump(mode="json")


@router.get("")
async def list_templates(services: ServicesDep, user: CurrentUser) -> dict[str, Any]:
    templates = await services.templates.list(user.id)
    return {"ok": True, "templates": [_payload(t) for t in templates]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    template = await services.templates.create(user.id, body)
    return {"ok": True, "template": _payload(template)}


@router.delete("/{template_id}")
async def delete_template(
    template_id: str, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    await services.templates.delete(user.id, template_id)
    return {"ok": True}


@router.post("/{template_id}/use")
async def use_template(
    template_id: str, services: ServicesDep, user: CurrentUser
) -> dict[str, Any]:
    """Bump the usage counter when a template is applied."""
    template = await services.templates.use(user.id, template_id)
    return {"ok": True, "template": _payload(template)}
