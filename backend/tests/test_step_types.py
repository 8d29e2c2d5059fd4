"""
Tests for typed step rules and answers.
"""
import pytest
from decimal import Decimal

from scout_shared.errors import ValidationError
from scout_shared.step_types import (
    BooleanAnswer, ChecklistAnswer, MediaCountAnswer, NumberAnswer, NumberRules,
    TextAnswer, TextRules, answer_from_item, parse_answer, parse_rules,
)


def step(step_type, rules=None, **extra):
    item = {'stepId': 'step-1', 'stepType': step_type, 'validationRules': rules or {}}
    item.update(extra)
    return item


class TestParseRules:

    def test_text_rules(self):
        rules = parse_rules('text', {'minLength': 5, 'maxLength': 200})
        assert rules == TextRules(min_length=5, max_length=200)
        assert rules.to_item() == {'minLength': 5, 'maxLength': 200}

    def test_number_rules_bounds_must_be_ordered(self):
        with pytest.raises(ValidationError):
            parse_rules('number', {'minValue': 10, 'maxValue': 1})

    def test_number_rules_are_decimals(self):
        rules = parse_rules('number', {'minValue': '0.5'})
        assert rules == NumberRules(min_value=Decimal('0.5'))

    def test_checklist_min_checked_cannot_exceed_items(self):
        with pytest.raises(ValidationError):
            parse_rules('checklist', {'items': ['a'], 'minChecked': 2})

    def test_unknown_step_type(self):
        with pytest.raises(ValidationError):
            parse_rules('signature', {})

    def test_negative_minimum_rejected(self):
        with pytest.raises(ValidationError):
            parse_rules('text', {'minLength': -1})

    def test_rules_must_be_an_object(self):
        with pytest.raises(ValidationError):
            parse_rules('text', ['minLength'])


class TestParseAnswer:

    def test_yes_no_requires_boolean(self):
        assert parse_answer(step('yes_no'), {'value': False}) == BooleanAnswer(False)
        with pytest.raises(ValidationError):
            parse_answer(step('yes_no'), {'value': 'yes'})

    def test_text_length_rules(self):
        text_step = step('text', {'minLength': 3, 'maxLength': 10})
        assert parse_answer(text_step, {'value': 'Clean'}) == TextAnswer('Clean')
        with pytest.raises(ValidationError):
            parse_answer(text_step, {'value': 'ok'})
        with pytest.raises(ValidationError):
            parse_answer(text_step, {'value': 'much too long answer'})

    def test_number_range(self):
        number_step = step('number', {'minValue': 0, 'maxValue': 100})
        assert parse_answer(number_step, {'value': 42.5}) == NumberAnswer(Decimal('42.5'))
        with pytest.raises(ValidationError):
            parse_answer(number_step, {'value': 101})
        with pytest.raises(ValidationError):
            parse_answer(number_step, {'value': True})

    def test_checklist_items(self):
        checklist_step = step('checklist', {'items': ['lights', 'music', 'smell'], 'minChecked': 2})
        answer = parse_answer(checklist_step, {'value': ['lights', 'music']})
        assert answer == ChecklistAnswer(('lights', 'music'))
        with pytest.raises(ValidationError):
            parse_answer(checklist_step, {'value': ['lights']})
        with pytest.raises(ValidationError):
            parse_answer(checklist_step, {'value': ['lights', 'parking']})

    def test_checklist_repeated_item_does_not_count_twice(self):
        checklist_step = step('checklist', {'items': ['lights', 'music', 'smell'], 'minChecked': 2})
        with pytest.raises(ValidationError):
            parse_answer(checklist_step, {'value': ['lights', 'lights']})

    def test_media_step_counts_media(self):
        answer = parse_answer(step('photo', minPhotos=2), {'note': 'Left aisle'}, media_count=3)
        assert answer == MediaCountAnswer(count=3, note='Left aisle')


class TestStoredAnswers:

    @pytest.mark.parametrize('answer', [
        BooleanAnswer(True),
        TextAnswer('All good'),
        NumberAnswer(Decimal('7')),
        ChecklistAnswer(('a', 'b')),
        MediaCountAnswer(count=2, note='front'),
    ])
    def test_item_form_rebuilds_same_answer(self, answer):
        assert answer_from_item(answer.to_item()) == answer

    def test_unknown_kind(self):
        assert answer_from_item({'answerKind': 'audio'}) is None
