"""Checks of tag values and tag filters against their templates.

Callers sort requested tags by template uuid first; every check walks them in that
order, so the reported error is the one for the smallest offending uuid.
"""
from typing import Dict, List, Optional, Sequence, TypeVar
from uuid import UUID

from polytag.errors import ValidationError
from polytag.models.tag_template import TagValueType
from polytag.schemas.file import FilePrepareTag, FileTagFilter, TagValue

T = TypeVar("T", FilePrepareTag, FileTagFilter)

# Filter operators that compare a single value
COMPARISON_OPERATORS = (
    "equal", "not_equal",
    "less_than", "less_than_or_equal",
    "greater_than", "greater_than_or_equal",
)


class FilenameTooShort(ValidationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"filename `{name}` is too short")


class DuplicatedTagTemplate(ValidationError):
    def __init__(self, template_id: UUID):
        self.template_id = template_id
        super().__init__(f"tag template `{template_id}` is duplicated")


class InvalidTagTemplate(ValidationError):
    def __init__(self, template_id: UUID):
        self.template_id = template_id
        super().__init__(f"tag template `{template_id}` does not exist")


class ExtraTagValue(ValidationError):
    def __init__(self, template_id: UUID, supplied: TagValueType):
        self.template_id = template_id
        self.supplied = supplied
        super().__init__(
            f"tag template `{template_id}` does not accept any values, "
            f"but a value of type `{supplied}` was supplied"
        )


class MissingTagValue(ValidationError):
    def __init__(self, template_id: UUID, expected: TagValueType):
        self.template_id = template_id
        self.expected = expected
        super().__init__(
            f"tag template `{template_id}` requires a value of type `{expected}` but was not met"
        )


class InvalidTagValue(ValidationError):
    def __init__(self, template_id: UUID, expected: TagValueType, supplied: TagValueType):
        self.template_id = template_id
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"tag template `{template_id}` expects a value of type `{expected}`, "
            f"but a value of type `{supplied}` was supplied"
        )


class ExtraTagValueFilter(ValidationError):
    def __init__(self, template_id: UUID):
        self.template_id = template_id
        super().__init__(
            f"tag template `{template_id}` does not accept any values, but a value filter was supplied"
        )


class InvalidTagValueFilter(ValidationError):
    def __init__(self, template_id: UUID, expected: TagValueType, supplied: TagValueType):
        self.template_id = template_id
        self.expected = expected
        self.supplied = supplied
        super().__init__(
            f"tag template `{template_id}` expects a value of type `{expected}`, "
            f"but a value filter of type `{supplied}` was supplied"
        )


class UnsupportedTagValueFilter(ValidationError):
    def __init__(self, template_id: UUID, operator: str, value_type: TagValueType):
        self.template_id = template_id
        self.operator = operator
        self.value_type = value_type
        super().__init__(
            f"tag template `{template_id}` has values of type `{value_type}`, "
            f"which do not support the `{operator}` filter"
        )


def value_type_of(value: TagValue) -> TagValueType:
    if isinstance(value, bool):
        return TagValueType.BOOLEAN
    if isinstance(value, int):
        return TagValueType.INTEGER
    return TagValueType.STRING


def validate_file_name(name: str) -> None:
    if len(name) == 0:
        raise FilenameTooShort(name)


def sort_unique_by_template(tags: Sequence[T]) -> List[T]:
    """Tags sorted by template uuid; a repeated template is rejected."""
    ordered = sorted(tags, key=lambda tag: tag.template_uuid)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.template_uuid == current.template_uuid:
            raise DuplicatedTagTemplate(current.template_uuid)
    return ordered


def check_tag_values(
    tags: Sequence[FilePrepareTag],
    template_types: Dict[UUID, Optional[TagValueType]],
) -> None:
    """Validate each tag's value against its template's declared type.

    ``template_types`` maps every template uuid found in the store to its value type.
    """
    for tag in tags:
        if tag.template_uuid not in template_types:
            raise InvalidTagTemplate(tag.template_uuid)

        expected = template_types[tag.template_uuid]
        if expected is None:
            if tag.value is not None:
                raise ExtraTagValue(tag.template_uuid, value_type_of(tag.value))
            continue
        if tag.value is None:
            raise MissingTagValue(tag.template_uuid, expected)
        supplied = value_type_of(tag.value)
        if supplied != expected:
            raise InvalidTagValue(tag.template_uuid, expected, supplied)


def check_tag_filters(
    filters: Sequence[FileTagFilter],
    template_types: Dict[UUID, Optional[TagValueType]],
) -> None:
    """Validate each filter's operands against its template's declared type."""
    for tag_filter in filters:
        if tag_filter.template_uuid not in template_types:
            raise InvalidTagTemplate(tag_filter.template_uuid)

        expected = template_types[tag_filter.template_uuid]
        value = tag_filter.value
        if value is None:
            continue
        if expected is None:
            raise ExtraTagValueFilter(tag_filter.template_uuid)

        operands = [getattr(value, op) for op in COMPARISON_OPERATORS]
        operands.extend(value.one_of or [])
        if value.contains is not None:
            if expected != TagValueType.STRING:
                raise UnsupportedTagValueFilter(tag_filter.template_uuid, "contains", expected)
            operands.append(value.contains)

        for operand in operands:
            if operand is None:
                continue
            supplied = value_type_of(operand)
            if supplied != expected:
                raise InvalidTagValueFilter(tag_filter.template_uuid, expected, supplied)
