"""
The global wgpu adapter and device, shared by all surfaces.
"""

import os

import wgpu

from ..utils import logger


class Shared:
    """An object that holds the wgpu adapter and device.

    There is one per process, created on first use via ``get_shared()``.
    Having a single device means that a compiled pipeline can be drawn on
    any surface.
    """

    _selected_adapter = None
    _power_preference = None
    _instance = None

    def __init__(self):
        # Set this instance as the global one
        assert Shared._instance is None
        Shared._instance = self

        # Select adapter to use.
        if Shared._selected_adapter:
            self._adapter = Shared._selected_adapter
        elif adapter_name := os.environ.get("PYHALO_WGPU_ADAPTER_NAME"):
            adapters = wgpu.gpu.enumerate_adapters_sync()
            adapters = [a for a in adapters if adapter_name in a.summary]
            if not adapters:
                raise ValueError(f"Adapter with name '{adapter_name}' not found.")
            self._adapter = adapters[0]
        else:
            self._adapter = wgpu.gpu.request_adapter_sync(
                power_preference=Shared._power_preference or "high-performance"
            )

        self._device = self._adapter.request_device_sync(
            required_features=[], required_limits={}
        )
        logger.info(f"Using adapter: {self._adapter.summary}")

        PyhaloAdapterInfoDiagnostics("pyhalo_adapter_info")

    @classmethod
    def get_instance(cls):
        return cls._instance

    @property
    def adapter(self):
        """The shared WGPU adapter object."""
        return self._adapter

    @property
    def device(self):
        """The shared WGPU device object."""
        return self._device


def select_power_preference(power_preference):
    """Select whether a powerful or battery-friendly GPU is selected.

    Accepts a value from ``wgpu.PowerPreference``: "high-performance" or "low-power".

    This function must be called before the shared device is created.
    """
    if power_preference not in wgpu.PowerPreference:
        raise ValueError(
            f"select_power_preference() received invalid value for {repr(wgpu.PowerPreference)}."
        )
    if Shared._instance is not None:
        raise RuntimeError(
            "The select_power_preference() function must be called before the device is created."
        )
    Shared._power_preference = power_preference


def select_adapter(adapter):
    """Select a specific adapter / GPU.

    Select an adapter as obtained via ``wgpu.gpu.enumerate_adapters_sync()``,
    which can be useful in multi-gpu environments. Setting the
    ``PYHALO_WGPU_ADAPTER_NAME`` environment variable has a similar effect.

    This function must be called before the shared device is created.
    """
    if not isinstance(adapter, wgpu.GPUAdapter):
        raise TypeError(
            f"select_adapter() only accepts a wgpu.GPUAdapter object, but got {adapter.__class__.__name__}."
        )
    if Shared._instance is not None:
        raise RuntimeError(
            "The select_adapter() function must be called before the device is created."
        )
    Shared._selected_adapter = adapter


def get_shared():
    """Get the globally shared instance.

    Creates it if it does not yet exist. This should not be called at the import
    time of any module. Use this to get the global device:
    ``get_shared().device``.
    """
    if Shared._instance is None:
        Shared()

    return Shared._instance


class PyhaloAdapterInfoDiagnostics(wgpu.DiagnosticsBase):
    def get_dict(self):
        return get_shared().adapter.info
