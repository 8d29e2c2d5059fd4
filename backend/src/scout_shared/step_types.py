"""
Typed validation rules and answers for inspection steps.

A step's ``stepType`` selects exactly one rules variant and one answer
variant. Rules are stored in the ``validationRules`` map and answers in the
``answerBool``/``answerText``/``answerNumber``/``answerChecked`` attributes
of a step answer item.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

from .errors import ValidationError
from .models import StepType
from .utils import to_decimal


# =============================================================================
# Rules
# =============================================================================

@dataclass(frozen=True)
class BooleanRules:
    def to_item(self) -> Dict[str, Any]:
        return {}

    def check(self, answer: 'BooleanAnswer') -> None:
        pass


@dataclass(frozen=True)
class TextRules:
    min_length: int = 0
    max_length: Optional[int] = None

    def to_item(self) -> Dict[str, Any]:
        item = {'minLength': self.min_length}
        if self.max_length is not None:
            item['maxLength'] = self.max_length
        return item

    def check(self, answer: 'TextAnswer') -> None:
        length = len(answer.value.strip())
        if length < self.min_length:
            raise ValidationError(f'Answer must be at least {self.min_length} characters')
        if self.max_length is not None and length > self.max_length:
            raise ValidationError(f'Answer must be at most {self.max_length} characters')


@dataclass(frozen=True)
class NumberRules:
    min_value: Optional[Decimal] = None
    max_value: Optional[Decimal] = None

    def to_item(self) -> Dict[str, Any]:
        item = {}
        if self.min_value is not None:
            item['minValue'] = self.min_value
        if self.max_value is not None:
            item['maxValue'] = self.max_value
        return item

    def check(self, answer: 'NumberAnswer') -> None:
        if self.min_value is not None and answer.value < self.min_value:
            raise ValidationError(f'Answer must be at least {self.min_value}')
        if self.max_value is not None and answer.value > self.max_value:
            raise ValidationError(f'Answer must be at most {self.max_value}')


@dataclass(frozen=True)
class ChecklistRules:
    items: Tuple[str, ...] = ()
    min_checked: int = 0

    def to_item(self) -> Dict[str, Any]:
        return {'items': list(self.items), 'minChecked': self.min_checked}

    def check(self, answer: 'ChecklistAnswer') -> None:
        unknown = [c for c in answer.checked if self.items and c not in self.items]
        if unknown:
            raise ValidationError(f'Unknown checklist items: {", ".join(unknown)}')
        if len(set(answer.checked)) != len(answer.checked):
            raise ValidationError('Checklist items can only be checked once')
        if len(answer.checked) < self.min_checked:
            raise ValidationError(f'At least {self.min_checked} checklist items must be checked')


@dataclass(frozen=True)
class MediaRules:
    min_photos: int = 0
    min_videos: int = 0

    def to_item(self) -> Dict[str, Any]:
        return {}

    def check(self, answer: 'MediaCountAnswer') -> None:
        pass


StepRules = Union[BooleanRules, TextRules, NumberRules, ChecklistRules, MediaRules]


def non_negative_int(raw: Dict[str, Any], key: str, default: int = 0) -> int:
    value = raw.get(key, default)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f'{key} must be a non-negative integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{key} must be a non-negative integer')
    if number < 0 or number != Decimal(str(value)):
        raise ValidationError(f'{key} must be a non-negative integer')
    return number


def parse_rules(step_type: str, raw: Optional[Dict[str, Any]],
                min_photos: int = 0, min_videos: int = 0) -> StepRules:
    """
    Build the rules variant for a step type from its stored/request form.

    Raises:
        ValidationError: unknown step type or malformed rules
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ValidationError('validationRules must be an object')

    if step_type == StepType.YES_NO:
        return BooleanRules()
    if step_type == StepType.TEXT:
        max_length = raw.get('maxLength')
        return TextRules(
            min_length=non_negative_int(raw, 'minLength'),
            max_length=non_negative_int(raw, 'maxLength') if max_length is not None else None,
        )
    if step_type == StepType.NUMBER:
        min_value = raw.get('minValue')
        max_value = raw.get('maxValue')
        rules = NumberRules(
            min_value=to_decimal(min_value, 'minValue') if min_value is not None else None,
            max_value=to_decimal(max_value, 'maxValue') if max_value is not None else None,
        )
        if rules.min_value is not None and rules.max_value is not None and rules.min_value > rules.max_value:
            raise ValidationError('minValue cannot exceed maxValue')
        return rules
    if step_type == StepType.CHECKLIST:
        items = raw.get('items') or []
        if not isinstance(items, list) or not all(isinstance(i, str) and i for i in items):
            raise ValidationError('Checklist items must be a list of strings')
        rules = ChecklistRules(items=tuple(items), min_checked=non_negative_int(raw, 'minChecked'))
        if items and rules.min_checked > len(items):
            raise ValidationError('minChecked cannot exceed the number of checklist items')
        return rules
    if step_type in StepType.MEDIA:
        return MediaRules(min_photos=min_photos, min_videos=min_videos)

    raise ValidationError(f'Unknown step type: {step_type}')


def rules_for_step(step: Dict[str, Any]) -> StepRules:
    """Rules variant of a stored template or job step item."""
    return parse_rules(
        step.get('stepType'),
        step.get('validationRules'),
        min_photos=int(step.get('minPhotos', 0)),
        min_videos=int(step.get('minVideos', 0)),
    )


# =============================================================================
# Answers
# =============================================================================

@dataclass(frozen=True)
class BooleanAnswer:
    value: bool

    def to_item(self) -> Dict[str, Any]:
        return {'answerKind': 'boolean', 'answerBool': self.value}

    def to_packet(self) -> Dict[str, Any]:
        return {'bool': self.value}


@dataclass(frozen=True)
class TextAnswer:
    value: str

    def to_item(self) -> Dict[str, Any]:
        return {'answerKind': 'text', 'answerText': self.value}

    def to_packet(self) -> Dict[str, Any]:
        return {'text': self.value}


@dataclass(frozen=True)
class NumberAnswer:
    value: Decimal

    def to_item(self) -> Dict[str, Any]:
        return {'answerKind': 'number', 'answerNumber': self.value}

    def to_packet(self) -> Dict[str, Any]:
        return {'number': self.value}


@dataclass(frozen=True)
class ChecklistAnswer:
    checked: Tuple[str, ...] = ()

    def to_item(self) -> Dict[str, Any]:
        return {'answerKind': 'checklist', 'answerChecked': list(self.checked)}

    def to_packet(self) -> Dict[str, Any]:
        return {'checked': list(self.checked)}


@dataclass(frozen=True)
class MediaCountAnswer:
    count: int = 0
    note: Optional[str] = None

    def to_item(self) -> Dict[str, Any]:
        item = {'answerKind': 'media', 'mediaCount': self.count}
        if self.note:
            item['answerText'] = self.note
        return item

    def to_packet(self) -> Dict[str, Any]:
        return {'mediaCount': self.count, 'text': self.note}


StepAnswerValue = Union[BooleanAnswer, TextAnswer, NumberAnswer, ChecklistAnswer, MediaCountAnswer]


def parse_answer(step: Dict[str, Any], raw: Dict[str, Any], media_count: int = 0) -> StepAnswerValue:
    """
    Build and check the typed answer for a job step from a request entry.

    Request entries use ``value`` for the typed answer (``note`` is accepted
    for media steps). ``media_count`` is the number of media rows submitted
    for the step.

    Raises:
        ValidationError: the value does not fit the step type or its rules
    """
    step_type = step.get('stepType')
    rules = rules_for_step(step)
    value = raw.get('value')

    if step_type == StepType.YES_NO:
        if not isinstance(value, bool):
            raise ValidationError(f'Step {step["stepId"]} expects a yes/no answer')
        answer = BooleanAnswer(value)
    elif step_type == StepType.TEXT:
        if not isinstance(value, str):
            raise ValidationError(f'Step {step["stepId"]} expects a text answer')
        answer = TextAnswer(value)
    elif step_type == StepType.NUMBER:
        answer = NumberAnswer(to_decimal(value, f'Step {step["stepId"]} answer'))
    elif step_type == StepType.CHECKLIST:
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError(f'Step {step["stepId"]} expects a list of checked items')
        answer = ChecklistAnswer(tuple(value))
    else:
        note = raw.get('note', value)
        if note is not None and not isinstance(note, str):
            raise ValidationError(f'Step {step["stepId"]} note must be text')
        answer = MediaCountAnswer(count=media_count, note=note)

    rules.check(answer)
    return answer


def answer_from_item(item: Dict[str, Any]) -> Optional[StepAnswerValue]:
    """Rebuild the typed answer stored on a step answer item."""
    kind = item.get('answerKind')
    if kind == 'boolean':
        return BooleanAnswer(bool(item.get('answerBool')))
    if kind == 'text':
        return TextAnswer(item.get('answerText', ''))
    if kind == 'number':
        return NumberAnswer(Decimal(str(item.get('answerNumber'))))
    if kind == 'checklist':
        return ChecklistAnswer(tuple(item.get('answerChecked') or []))
    if kind == 'media':
        return MediaCountAnswer(count=int(item.get('mediaCount', 0)), note=item.get('answerText'))
    return None
