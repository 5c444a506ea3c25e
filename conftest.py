"""Global configuration for pytest"""

import numpy as np
import pytest


@pytest.fixture(autouse=True, scope="session")
def numerical_exceptions():
    """
    Ensure any numerical errors raise a warning in our test suite
    The point is that we enforce such cases to be handled explicitly in our code
    Preferably using local `with np.errstate(...)` constructs
    """
    np.seterr(all="raise")


@pytest.fixture(scope="session")
def device():
    """The shared wgpu device, preferably on the LLVMpipe adapter.

    Tests that use this fixture are skipped when there is no adapter.
    """
    import wgpu
    from pyhalo.renderer import shared

    if shared.Shared.get_instance() is None:
        try:
            adapters = wgpu.gpu.enumerate_adapters_sync()
        except Exception as err:
            pytest.skip(reason=f"Cannot load the wgpu lib: {err}")
        adapters_llvm = [a for a in adapters if "llvmpipe" in a.summary.lower()]
        if adapters_llvm:
            shared.select_adapter(adapters_llvm[0])
        elif not adapters:
            pytest.skip(reason="No wgpu adapter found")
    return shared.get_shared().device
