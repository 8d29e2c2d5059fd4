"""
Template Catalog.
Versioned inspection step definitions per company. Editing a template
replaces its whole step set and bumps its version; jobs already posted keep
their own snapshot.
"""
from typing import Any, Dict, List, Optional

from .auth import require_manager, require_member
from .errors import ConcurrentUpdateError, NotFoundError, ValidationError
from .logging import logger
from .models import StepType
from .step_types import non_negative_int, parse_rules
from .utils import new_id, to_iso, utc_now

# Keeps template edits and job snapshots inside one DynamoDB transaction
MAX_TEMPLATE_STEPS = 48


def require_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required')
    return value.strip()


def optional_text(value: Any, field: str) -> Optional[str]:
    """Stripped text, or None for a missing or blank value."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be text')
    return value.strip() or None


def normalize_steps(raw_steps: Any, template_id: str, version: int) -> List[Dict[str, Any]]:
    """
    Validate request steps and build template step items.

    Steps get fresh ``orderIndex`` values 0..n-1 in list order.

    Raises:
        ValidationError: no steps, too many steps, or a malformed step
    """
    if not isinstance(raw_steps, list) or not raw_steps:
        raise ValidationError('A template needs at least one step')
    if len(raw_steps) > MAX_TEMPLATE_STEPS:
        raise ValidationError(f'A template can have at most {MAX_TEMPLATE_STEPS} steps')

    steps = []
    for index, raw in enumerate(raw_steps):
        if not isinstance(raw, dict):
            raise ValidationError(f'Step {index + 1} must be an object')
        step_type = raw.get('stepType')
        if step_type not in StepType.ALL:
            raise ValidationError(f'Step {index + 1} has unknown step type: {step_type}')
        is_required = raw.get('isRequired', True)
        if not isinstance(is_required, bool):
            raise ValidationError(f'Step {index + 1} isRequired must be true or false')

        min_photos = non_negative_int(raw, 'minPhotos')
        min_videos = non_negative_int(raw, 'minVideos')
        rules = parse_rules(step_type, raw.get('validationRules'), min_photos, min_videos)

        steps.append({
            'templateId': template_id,
            'orderIndex': index,
            'templateVersion': version,
            'prompt': require_text(raw.get('prompt'), f'Step {index + 1} prompt'),
            'stepType': step_type,
            'isRequired': is_required,
            'minPhotos': min_photos,
            'minVideos': min_videos,
            'guidanceText': optional_text(raw.get('guidanceText'), f'Step {index + 1} guidanceText'),
            'validationRules': rules.to_item(),
        })
    return steps


def _duration(value: Any) -> int:
    minutes = non_negative_int({'durationMinutes': value}, 'durationMinutes')
    if minutes == 0:
        raise ValidationError('durationMinutes must be positive')
    return minutes


class TemplateCatalog:
    """Create, edit and archive inspection templates."""

    def __init__(self, repository):
        self.repository = repository

    def get_template(self, template_id: str, caller_id: str) -> Dict[str, Any]:
        """Template item with its ordered ``steps``; any company member may read it."""
        template = self.repository.get_template(template_id)
        if not template:
            raise NotFoundError('Template not found')
        require_member(self.repository, template['companyId'], caller_id)
        return dict(template, steps=self.repository.list_template_steps(template_id))

    def list_templates(self, company_id: str, caller_id: str,
                       include_archived: bool = False) -> List[Dict[str, Any]]:
        """A company's templates, newest first, without their steps."""
        require_member(self.repository, company_id, caller_id)
        templates = self.repository.list_templates(company_id)
        if not include_archived:
            templates = [t for t in templates if t.get('isActive', True)]
        return sorted(templates, key=lambda t: t.get('createdAt', ''), reverse=True)

    def create_template(self, company_id: str, caller_id: str, title: str, category: str,
                        duration_minutes: int, steps: List[Dict[str, Any]],
                        guidance_text: Optional[str] = None) -> Dict[str, Any]:
        require_manager(self.repository, company_id, caller_id)

        template_id = new_id()
        now = to_iso(utc_now())
        template = {
            'templateId': template_id,
            'companyId': company_id,
            'title': require_text(title, 'title'),
            'category': require_text(category, 'category'),
            'durationMinutes': _duration(duration_minutes),
            'guidanceText': optional_text(guidance_text, 'guidanceText'),
            'version': 1,
            'isActive': True,
            'createdBy': caller_id,
            'createdAt': now,
            'updatedAt': now,
        }
        step_items = normalize_steps(steps, template_id, 1)

        self.repository.create_template(template, step_items)
        logger.info(f"Created template {template_id} with {len(step_items)} steps for company {company_id}")
        return dict(template, steps=step_items)

    def update_template(self, template_id: str, caller_id: str, title: str, category: str,
                        duration_minutes: int, steps: List[Dict[str, Any]],
                        guidance_text: Optional[str] = None) -> Dict[str, Any]:
        """
        Replace a template's fields and its entire step set as one unit.

        The version is bumped; jobs created from earlier versions are not touched.

        Raises:
            NotFoundError: unknown template
            AuthorizationError: caller is not a manager of the template's company
            ConcurrentUpdateError: someone else edited the template meanwhile
        """
        template = self.repository.get_template(template_id)
        if not template:
            raise NotFoundError('Template not found')
        require_manager(self.repository, template['companyId'], caller_id)

        current_version = int(template['version'])
        new_version = current_version + 1
        updates = {
            'title': require_text(title, 'title'),
            'category': require_text(category, 'category'),
            'durationMinutes': _duration(duration_minutes),
            'guidanceText': optional_text(guidance_text, 'guidanceText'),
            'version': new_version,
            'updatedAt': to_iso(utc_now()),
        }
        step_items = normalize_steps(steps, template_id, new_version)

        if not self.repository.replace_template_steps(template_id, current_version, updates, step_items):
            raise ConcurrentUpdateError('Template was modified concurrently; reload and retry')

        logger.info(f"Template {template_id} updated to version {new_version} ({len(step_items)} steps)")
        updated = dict(template)
        updated.update(updates)
        updated['steps'] = step_items
        return updated

    def delete_template(self, template_id: str, caller_id: str) -> Dict[str, Any]:
        """Soft-archive a template; it stops being postable but its history stays."""
        template = self.repository.get_template(template_id)
        if not template:
            raise NotFoundError('Template not found')
        require_manager(self.repository, template['companyId'], caller_id)

        archived_at = to_iso(utc_now())
        if not self.repository.archive_template(template_id, archived_at):
            raise NotFoundError('Template not found')

        logger.info(f"Archived template {template_id}")
        return dict(template, isActive=False, archivedAt=archived_at, updatedAt=archived_at)
