from pyhalo.errors import BackendCompileError
from pyhalo.renderer import PipelineCache, CompiledPipeline
from pyhalo.shader import ShaderArtifact


class FakeBuilder:
    """Records builds, and fails for sources that contain 'FAIL'."""

    def __init__(self):
        self.built = []

    def __call__(self, artifact):
        self.built.append(artifact)
        if "FAIL" in artifact.source:
            raise BackendCompileError("backend says no")
        n = len(self.built)
        return f"pipeline{n}", f"bind_group{n}", f"buffer{n}"


def make_artifact(source="// ok"):
    return ShaderArtifact(source, "fs_main")


def test_cache_builds_once_per_version():
    builder = FakeBuilder()
    cache = PipelineCache(builder)
    artifact = make_artifact()

    assert cache.get("surface") is None
    compiled = cache.ensure_fresh("surface", 1, artifact)
    assert compiled == CompiledPipeline(1, "pipeline1", "bind_group1", "buffer1")
    assert cache.get("surface") is compiled
    assert cache.rebuild_count == 1

    # Same version: no rebuild, no matter how often
    for _ in range(10):
        assert cache.ensure_fresh("surface", 1, artifact) is compiled
    assert cache.rebuild_count == 1


def test_cache_rebuilds_exactly_once_for_newer_version():
    builder = FakeBuilder()
    cache = PipelineCache(builder)
    cache.ensure_fresh("surface", 1, make_artifact("// one"))

    new_artifact = make_artifact("// two")
    compiled = cache.ensure_fresh("surface", 2, new_artifact)
    compiled_again = cache.ensure_fresh("surface", 2, new_artifact)
    assert compiled is compiled_again
    assert compiled.version == 2
    assert cache.rebuild_count == 2
    assert builder.built[-1] is new_artifact


def test_cache_never_rebuilds_for_older_version():
    cache = PipelineCache(FakeBuilder())
    compiled = cache.ensure_fresh("surface", 5, make_artifact())
    assert cache.ensure_fresh("surface", 3, make_artifact("// old")) is compiled
    assert cache.rebuild_count == 1


def test_cache_does_not_compare_content():
    # Rebuilds depend on the version only
    cache = PipelineCache(FakeBuilder())
    artifact = make_artifact()
    cache.ensure_fresh("surface", 1, artifact)
    cache.ensure_fresh("surface", 2, artifact)
    assert cache.rebuild_count == 2
    cache.ensure_fresh("surface", 2, make_artifact("// different"))
    assert cache.rebuild_count == 2


def test_cache_per_surface():
    cache = PipelineCache(FakeBuilder())
    a = cache.ensure_fresh("a", 1, make_artifact())
    b = cache.ensure_fresh("b", 1, make_artifact())
    assert a is not b
    assert len(cache) == 2
    assert "a" in cache and "b" in cache

    cache.forget("a")
    assert "a" not in cache
    assert cache.get("a") is None
    assert cache.get("b") is b
    cache.forget("not there")


def test_cache_keeps_previous_pipeline_on_backend_error():
    errors = []
    cache = PipelineCache(
        FakeBuilder(), on_error=lambda *args: errors.append(args)
    )
    good = cache.ensure_fresh("surface", 1, make_artifact())

    result = cache.ensure_fresh("surface", 2, make_artifact("// FAIL"))
    assert result is good
    assert cache.get("surface") is good
    assert cache.failed_version("surface") == 2

    (error,) = errors
    key, version, err = error
    assert (key, version) == ("surface", 2)
    assert isinstance(err, BackendCompileError)
    assert err.message == "backend says no"

    # The failed version is not retried every frame
    for _ in range(5):
        assert cache.ensure_fresh("surface", 2, make_artifact("// FAIL")) is good
    assert cache.rebuild_count == 2
    assert len(errors) == 1

    # A newer version is built again
    fixed = cache.ensure_fresh("surface", 3, make_artifact())
    assert fixed.version == 3
    assert cache.failed_version("surface") is None


def test_cache_backend_error_without_previous_pipeline():
    cache = PipelineCache(FakeBuilder())
    assert cache.ensure_fresh("surface", 1, make_artifact("// FAIL")) is None
    assert cache.get("surface") is None
