"""
Utility functions for pyhalo.

.. currentmodule:: pyhalo.utils

.. autosummary::
    :toctree: utils/

    array_from_shadertype
    generate_uniform_struct
    Rect
    viewport.Viewport
    enums

"""

import os
import logging
from collections import namedtuple

import numpy as np

from . import enums  # noqa: F401


logger = logging.getLogger("pyhalo")


def _set_log_level():
    # Set default level
    logger.setLevel(logging.WARN)
    # Set user-specified level
    level = os.getenv("PYHALO_LOG_LEVEL", "")
    if level:
        try:
            if level.isnumeric():
                logger.setLevel(int(level))
            else:
                logger.setLevel(level.upper())
        except Exception:
            logger.warning(f"Invalid pyhalo log level: {level}")


_set_log_level()


Rect = namedtuple("Rect", ["x", "y", "width", "height"])
Rect.__doc__ = "A rectangle in logical pixels, with the origin at the top-left."


def array_from_shadertype(shadertype):
    """Get a numpy structured scalar from a dict shadertype.

    The fields are re-ordered and padded as necessary to fulfil alignment
    rules. See https://www.w3.org/TR/WGSL/#structure-layout-rules

    Fields with the same alignment keep their relative order. Matrices
    are stored transposed from the perspective of Python, because WGSL
    matrices are column-major::

        uniform["a_matrix"] = numpy_array.T

    params:
        shadertype: dict
            A dict mapping field names to formats, e.g. ``"f4"``,
            ``"2xf4"`` or ``"4x4xf4"``.
    """
    assert isinstance(shadertype, dict)

    primitives = {
        "i4": "int32",
        "u4": "uint32",
        "f4": "float32",
    }

    fields_per_align = {16: [], 8: [], 4: []}
    struct_alignment = 4

    for name, format in shadertype.items():
        if format[-2:] not in primitives:
            raise RuntimeError(
                f"Values in a uniform must have a 32bit primitive type, not {format}"
            )
        primitive = primitives[format[-2:]]
        shape = [int(i) for i in format[:-2].split("x") if i] or [1]
        if len(shape) > 1 and shape[-1] == 3:
            raise RuntimeError(f"Matrices with 3 rows are not supported: {format}")
        align = 16 if shape[-1] > 2 else shape[-1] * 4
        size = int(np.prod(shape)) * 4
        shape = () if shape == [1] else tuple(shape)
        fields_per_align[align].append((name, primitive, shape, size))
        struct_alignment = max(struct_alignment, align)

    dtype_fields = []
    pad_index = 0
    nbytes = 0

    def pad(n):
        nonlocal pad_index, nbytes
        pad_index += 1
        dtype_fields.append((f"__padding{pad_index}", "uint8", (n,)))
        nbytes += n

    # Process the fields from big to small alignment, to avoid padding
    for align in (16, 8, 4):
        for name, primitive, shape, size in fields_per_align[align]:
            if nbytes % align:
                pad(align - nbytes % align)
            dtype_fields.append((name, primitive, shape))
            nbytes += size

    # The size of a struct is a multiple of its largest alignment
    if nbytes % struct_alignment:
        pad(struct_alignment - nbytes % struct_alignment)

    uniform_data = np.zeros((), dtype=dtype_fields)
    assert uniform_data.nbytes == nbytes
    return uniform_data


def generate_uniform_struct(dtype_struct, structname):
    """Generate wgsl code from a uniform struct defined with a numpy dtype."""
    code = f"struct {structname} {{"

    for fieldname, (dtype, offset) in dtype_struct.fields.items():
        if fieldname.startswith("__"):
            continue
        # Resolve primitive type
        primitive_type = dtype.base.name
        primitive_type = primitive_type.replace("float", "f")
        primitive_type = primitive_type.replace("uint", "u")
        primitive_type = primitive_type.replace("int", "i")
        # Resolve actual type (only scalar, vec, mat)
        shape = dtype.shape
        if shape == () or shape == (1,):
            wgsl_type = primitive_type
            alignment = 4
        elif len(shape) == 1:
            n = shape[0]
            if n < 2 or n > 4:
                raise TypeError(f"Type {dtype} looks like an unsupported vec{n}.")
            wgsl_type = f"vec{n}<{primitive_type}>"
            alignment = 8 if n < 3 else 16
        elif len(shape) == 2:
            # A matNxM is Matrix of N columns and M rows
            n, m = shape[1], shape[0]
            if n < 2 or n > 4 or m < 2 or m > 4:
                raise TypeError(f"Type {dtype} looks like an unsupported mat{n}x{m}.")
            wgsl_type = f"mat{n}x{m}<{primitive_type}>"
            alignment = 8 if m < 3 else 16
        else:
            raise TypeError(f"Unsupported type {dtype}")

        # Check alignment (https://www.w3.org/TR/WGSL/#alignment-and-size)
        if offset % alignment != 0:
            raise TypeError(
                f"Struct alignment error: {structname}.{fieldname} alignment must be {alignment}"
            )

        code += f"\n    {fieldname}: {wgsl_type},"

    code += "\n};"
    return code
