from collections import namedtuple

from ..utils.enums import StatusKind


_labels = {
    StatusKind.validated: "Shader is valid",
    StatusKind.validating: "Shader is being validated",
    StatusKind.invalid: "Shader is invalid!",
    StatusKind.needs_validation: "Shader needs validation!",
}


class ValidationStatus(namedtuple("ValidationStatus", ["kind", "diagnostic"])):
    """The validation state of an editing session.

    The ``diagnostic`` is only set when the kind is ``invalid``.
    """

    __slots__ = ()

    @classmethod
    def validated(cls):
        return cls(StatusKind.validated, None)

    @classmethod
    def validating(cls):
        return cls(StatusKind.validating, None)

    @classmethod
    def invalid(cls, diagnostic):
        return cls(StatusKind.invalid, diagnostic)

    @classmethod
    def needs_validation(cls):
        return cls(StatusKind.needs_validation, None)

    @property
    def label(self):
        """A short description, e.g. for a tooltip."""
        return _labels[self.kind]
