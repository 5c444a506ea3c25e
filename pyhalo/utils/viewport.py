import numpy as np
import pylinalg as la


class Viewport:
    """The physical render area of a surface.

    Parameters
    ----------
    physical_size : tuple, [2]
        The size of the render target in physical pixels (w, h).
    scale_factor : float
        The ratio between physical and logical pixels (e.g. 2 on a HiDPI display).

    """

    def __init__(self, physical_size, scale_factor=1.0):
        if not len(physical_size) == 2:
            raise ValueError("Viewport physical_size must be 2 numbers.")
        if scale_factor <= 0:
            raise ValueError("Viewport scale_factor must be positive.")
        self._physical_size = tuple(int(v) for v in physical_size)
        self._scale_factor = float(scale_factor)

    def __repr__(self):
        return f"<Viewport {self._physical_size} x{self._scale_factor:g}>"

    @property
    def physical_size(self):
        """The size in physical pixels."""
        return self._physical_size

    @property
    def logical_size(self):
        """The size in logical pixels."""
        w, h = self._physical_size
        return w / self._scale_factor, h / self._scale_factor

    @property
    def scale_factor(self):
        """The number of physical pixels per logical pixel."""
        return self._scale_factor

    def projection(self):
        """The transform from physical pixel coordinates to clip space.

        Pixel (0, 0) is the top-left corner of the target; y points down.
        """
        w, h = self._physical_size
        matrix = la.mat_orthographic(0, w, 0, h, -1, 1, depth_range=(0, 1))
        matrix = np.asarray(matrix, dtype=np.float32)
        matrix.flags.writeable = False
        return matrix
