"""Unit tests for core models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from apkforge.core.exceptions import NonZeroExitError
from apkforge.core.types import Stage
from apkforge.models.project import (
    CommandOutcome,
    MemberResult,
    PackageTarget,
    PipelineRequest,
    SplitAnalysisResult,
    SplitPackageSet,
    StageOutcome,
    resolve_project_dir,
)
from apkforge.models.tools import ArtifactKind, ToolDescriptor


class TestProjectDirResolution:
    """Tests for project directory disambiguation."""

    def test_unused_stem_is_taken_as_is(self, sample_apk):
        """The project directory is the package stem next to the package."""
        assert resolve_project_dir(sample_apk) == sample_apk.parent / "app"

    def test_existing_dir_gets_suffix(self, sample_apk):
        """An existing directory is never reused."""
        (sample_apk.parent / "app").mkdir()
        assert resolve_project_dir(sample_apk) == sample_apk.parent / "app1"

    def test_suffix_keeps_growing(self, sample_apk):
        """Each collision appends another 1."""
        (sample_apk.parent / "app").mkdir()
        (sample_apk.parent / "app1").mkdir()
        assert resolve_project_dir(sample_apk) == sample_apk.parent / "app11"

    def test_back_to_back_requests_get_distinct_dirs(self, sample_apk, context):
        """Two requests for the same package before either creates its directory.

        The first request reserves its directory in the context, so the second
        one must move on even though nothing exists on disk yet.
        """
        (sample_apk.parent / "app").mkdir()

        first = resolve_project_dir(sample_apk, context)
        second = resolve_project_dir(sample_apk, context)

        assert first == sample_apk.parent / "app1"
        assert second == sample_apk.parent / "app11"
        assert not first.exists()

    def test_package_target_for_apk(self, sample_apk, context):
        """Targets carry the resolved directory and the file name."""
        target = PackageTarget.for_apk(sample_apk, context)
        assert target.project_dir == sample_apk.parent / "app"
        assert target.name == "app.apk"
        assert context.is_reserved(target.project_dir)


class TestPipelineRequest:
    """Tests for request normalization."""

    def test_decompile_args_dropped_without_decompile(self, sample_apk):
        """Decompiler arguments are meaningless unless decompile is set."""
        target = PackageTarget(apk_path=sample_apk, project_dir=sample_apk.parent / "app")
        request = PipelineRequest(target=target, decompile=False, decompile_args=["--deobf"])
        assert request.decompile_args == []

    def test_decompile_args_kept_with_decompile(self, sample_apk):
        target = PackageTarget(apk_path=sample_apk, project_dir=sample_apk.parent / "app")
        request = PipelineRequest(target=target, decompile=True, decompile_args=["--deobf"])
        assert request.decompile_args == ["--deobf"]

    def test_defaults(self, sample_apk):
        """A bare request only decodes."""
        target = PackageTarget(apk_path=sample_apk, project_dir=sample_apk.parent / "app")
        request = PipelineRequest(target=target)
        assert request.decode_args == []
        assert not request.decompile
        assert not request.run_static_analysis
        assert not request.open_workspace_after


class TestSplitPackageSet:
    """Tests for split set invariants."""

    def _target(self, temp_dir, name, shared):
        return PackageTarget(apk_path=temp_dir / name, project_dir=shared / name.removesuffix(".apk"))

    def test_members_share_project_dir(self, temp_dir):
        shared = temp_dir / "app"
        base = self._target(temp_dir, "app.apk", shared)
        split = self._target(temp_dir, "app.config.en.apk", shared)

        split_set = SplitPackageSet(base_package=base, members=[base, split], shared_project_dir=shared)

        assert split_set.member_names == ["app.apk", "app.config.en.apk"]

    def test_empty_members_rejected(self, temp_dir):
        shared = temp_dir / "app"
        base = self._target(temp_dir, "app.apk", shared)
        with pytest.raises(PydanticValidationError):
            SplitPackageSet(base_package=base, members=[], shared_project_dir=shared)

    def test_member_outside_shared_dir_rejected(self, temp_dir):
        shared = temp_dir / "app"
        base = self._target(temp_dir, "app.apk", shared)
        stray = PackageTarget(apk_path=temp_dir / "app.config.en.apk", project_dir=temp_dir / "elsewhere")
        with pytest.raises(PydanticValidationError):
            SplitPackageSet(base_package=base, members=[base, stray], shared_project_dir=shared)

    def test_failed_members(self, temp_dir):
        """A member failed when its decode failed, not when a later stage did."""
        shared = temp_dir / "app"
        a = self._target(temp_dir, "a.apk", shared)
        b = self._target(temp_dir, "b.apk", shared)
        split_set = SplitPackageSet(base_package=a, members=[a, b], shared_project_dir=shared)

        result = SplitAnalysisResult(
            split_set=split_set,
            outcomes={
                "a.apk": [StageOutcome.ok(Stage.DECODE), StageOutcome.failed(Stage.DECOMPILE, "boom")],
                "b.apk": [StageOutcome.failed(Stage.DECODE, "boom")],
            },
        )
        assert result.failed_members == ["b.apk"]


class TestOutcomes:
    """Tests for outcome and result models."""

    def test_stage_outcome_failed_keeps_detail(self):
        error = NonZeroExitError(message="apktool failed", command=["java", "-jar"], returncode=1)
        outcome = StageOutcome.failed(Stage.DECODE, error)
        assert not outcome.success
        assert "exited with 1" in outcome.error_detail

    def test_member_result_constructors(self, temp_dir):
        ok = MemberResult.ok("a", temp_dir, temp_dir / "a.apk")
        assert ok.success and ok.error is None

        error = NonZeroExitError(message="failed", command=["adb"], returncode=1)
        failed = MemberResult.fail("b", error)
        assert not failed.success and failed.error is error

    def test_command_outcome(self):
        outcome = CommandOutcome.fail("rebuild", ["boom"], project_dir="/tmp/app")
        assert not outcome.success
        assert outcome.details == {"project_dir": "/tmp/app"}
        assert CommandOutcome.ok("install").success


class TestToolDescriptor:
    """Tests for tool version handling."""

    @pytest.fixture
    def descriptor(self):
        return ToolDescriptor(
            name="jadx",
            version="1.5.0",
            expected_version_constraint=">=1.5.0",
            download_source="https://example.invalid/v{version}/jadx-{version}.zip",
            github_repo="skylot/jadx",
            artifact_kind=ArtifactKind.ZIP,
            file_name="jadx-{version}",
            executable="bin/jadx",
        )

    def test_satisfies(self, descriptor):
        assert descriptor.satisfies("1.5.0")
        assert descriptor.satisfies("1.5.1")
        assert not descriptor.satisfies("1.4.7")
        assert not descriptor.satisfies(None)
        assert not descriptor.satisfies("not-a-version")

    def test_is_newer(self, descriptor):
        descriptor.installed_version = "1.5.0"
        assert descriptor.is_newer("1.5.1")
        assert not descriptor.is_newer("1.5.0")

    def test_paths(self, descriptor, temp_dir):
        """Archives install into a versioned directory holding the executable."""
        assert descriptor.download_url() == "https://example.invalid/v1.5.0/jadx-1.5.0.zip"
        assert descriptor.install_path(temp_dir) == temp_dir / "jadx-1.5.0"
        descriptor.installed_version = "1.5.1"
        assert descriptor.entry_point(temp_dir) == temp_dir / "jadx-1.5.1" / "bin" / "jadx"
