# model.py
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Field:
    name: str
    type: str                 # full type text, e.g. "struct role*"
    simple_type: str          # leaf identifier, e.g. "role"
    alias: Optional[str] = None
    is_pointer: bool = False
    is_array: bool = False
    array_bound: bool = False  # declared with [..], storage lives inside the struct
    has_counter: bool = False
    counter_field: Optional[str] = None
    is_counter_field: bool = False
    is_json_literal: bool = False
    line: Optional[int] = None

    @property
    def json_name(self):
        """Key used on the wire: the alias when one was given."""
        return self.alias if self.alias is not None else self.name

    @property
    def base_type(self):
        """Type text without pointer markers, suitable for sizeof()."""
        return self.type.rstrip("*").rstrip()

    @property
    def element_type(self):
        """Type of one element when the field is an array."""
        if self.array_bound:
            return self.type
        if self.type.endswith("*"):
            return self.type[:-1]
        return self.type

    @property
    def is_string_buffer(self):
        """char name[N]: fixed in-place string storage."""
        return self.array_bound and self.type == "char" and not self.has_counter


@dataclass
class Model:
    name: str = ""            # typedef alias or "struct <tag>"
    simple_name: str = ""
    tag: Optional[str] = None  # struct tag, when the declaration has one
    stringify: bool = False
    parse: bool = False
    fields: List[Field] = field(default_factory=list)
    source: Optional[str] = None
    line: Optional[int] = None

    def field_by_name(self, name):
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def dispatch_fields(self):
        """Fields that take part in key dispatch and emission (counters excluded)."""
        return [f for f in self.fields if not f.is_counter_field]

    def counter_of(self, f):
        """Resolved counter field for an array field, or None."""
        if not f.has_counter:
            return None
        counter = self.field_by_name(f.counter_field)
        if counter is None or not counter.is_counter_field:
            return None
        return counter
