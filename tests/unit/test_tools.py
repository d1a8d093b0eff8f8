"""Unit tests for the tool adapters' command lines."""

import pytest

from apkforge.core.exceptions import NonZeroExitError, ToolError, ValidationError
from apkforge.tools.adb import Adb
from apkforge.tools.apk_mitm import ApkMitm, patched_path
from apkforge.tools.apktool import Apktool, apk_name_from_apktool_yml
from apkforge.tools.git import Git
from apkforge.tools.jadx import Jadx
from apkforge.tools.quark import Quark, read_report
from apkforge.tools.registry import APKTOOL, JADX, UBER_APK_SIGNER, by_name, default_descriptors
from apkforge.tools.toolchain import build_toolchain
from apkforge.tools.workspace import EditorOpener


@pytest.fixture
def descriptors(context):
    return by_name(default_descriptors(context.config.tools))


@pytest.fixture
def apktool(runner, context, descriptors):
    return Apktool(runner, context, descriptors[APKTOOL], descriptors[UBER_APK_SIGNER])


@pytest.fixture
def project_dir(temp_dir):
    project = temp_dir / "app"
    project.mkdir()
    (project / "apktool.yml").write_text(
        "!!brut.androlib.meta.MetaInfo\napkFileName: app.apk\nisFrameworkApk: false\n"
    )
    return project


class TestApktoolYml:
    """Tests for reading the original package name."""

    def test_apk_file_name(self, project_dir):
        assert apk_name_from_apktool_yml(project_dir / "apktool.yml") == "app.apk"

    def test_quoted_name(self, temp_dir):
        yml = temp_dir / "apktool.yml"
        yml.write_text("apkFileName: 'my app.apk'\n")
        assert apk_name_from_apktool_yml(yml) == "my app.apk"

    def test_missing_name_falls_back_to_dir(self, temp_dir):
        project = temp_dir / "fallback"
        project.mkdir()
        (project / "apktool.yml").write_text("version: 2.9.3\n")
        assert apk_name_from_apktool_yml(project / "apktool.yml") == "fallback.apk"


@pytest.mark.asyncio
class TestApktool:
    """Tests for the apktool and signer invocations."""

    async def test_decode(self, apktool, runner, sample_apk, context):
        await apktool.decode(sample_apk, sample_apk.parent / "app", ["-f", "--no-src"])

        cmd, _ = runner.commands[0]
        jar = str(context.data_dir / "apktool_2.9.3.jar")
        assert cmd == ["java", "-jar", jar, "d", str(sample_apk), "-o", str(sample_apk.parent / "app"), "-f", "--no-src"]

    async def test_rebuild_then_sign(self, apktool, runner, project_dir, context):
        output = await apktool.rebuild(project_dir / "apktool.yml", ["--use-aapt2"])

        assert output == project_dir / "dist" / "app.apk"
        build, sign = [cmd for cmd, _ in runner.commands]
        assert build[3:] == ["b", str(project_dir), "--use-aapt2"]
        assert sign == [
            "java",
            "-jar",
            str(context.data_dir / "uber-apk-signer-1.3.0.jar"),
            "-a",
            str(output),
            "--allowResign",
            "--overwrite",
        ]

    async def test_failed_build_is_not_signed(self, apktool, runner, project_dir):
        runner.fail_when = lambda cmd: "b" in cmd

        with pytest.raises(NonZeroExitError):
            await apktool.rebuild(project_dir / "apktool.yml")

        assert len(runner.commands) == 1

    async def test_rebuild_without_manifest(self, apktool, runner, temp_dir):
        with pytest.raises(ValidationError):
            await apktool.rebuild(temp_dir / "apktool.yml")
        assert runner.commands == []

    async def test_empty_framework_dir(self, apktool, runner):
        await apktool.empty_framework_dir()
        assert runner.commands[0][0][3:] == ["empty-framework-dir", "--force"]


@pytest.mark.asyncio
class TestOtherAdapters:
    """Tests for jadx, quark, git, adb, apk-mitm and the workspace opener."""

    async def test_jadx(self, runner, context, descriptors, sample_apk, project_dir):
        await Jadx(runner, context, descriptors[JADX]).decompile(sample_apk, project_dir, ["--deobf"])

        cmd, _ = runner.commands[0]
        assert cmd[0] == str(descriptors[JADX].entry_point(context.data_dir))
        assert cmd[1:] == [
            "-r",
            "-q",
            "-v",
            "--output-dir",
            str(project_dir / "java_src"),
            "--deobf",
            str(sample_apk),
        ]

    async def test_quark(self, runner, sample_apk, project_dir):
        await Quark(runner).analyze(sample_apk, project_dir)
        assert runner.commands[0][0] == [
            "quark",
            "-a",
            str(sample_apk),
            "-s",
            "-o",
            str(project_dir / "quarkReport.json"),
        ]

    async def test_git_sequence(self, runner, project_dir):
        """git init, stage everything, then commit, all inside the project."""
        await Git(runner).init(project_dir, "Initial commit")

        assert (project_dir / ".gitignore").read_text() == "/build\n/dist\n"
        assert runner.commands == [
            (["git", "init"], project_dir),
            (["git", "add", "-A"], project_dir),
            (["git", "commit", "-q", "-m", "Initial commit"], project_dir),
        ]

    async def test_git_stops_at_first_failure(self, runner, project_dir):
        runner.fail_when = lambda cmd: cmd[1] == "init"

        with pytest.raises(NonZeroExitError):
            await Git(runner).init(project_dir, "Initial commit")

        assert len(runner.commands) == 1

    async def test_git_missing_project_dir(self, runner, temp_dir):
        with pytest.raises(ToolError) as exc_info:
            await Git(runner).init(temp_dir / "gone", "Initial commit")

        assert isinstance(exc_info.value.cause, FileNotFoundError)
        assert runner.commands == []

    async def test_adb(self, runner, sample_apk):
        await Adb(runner, "/opt/platform-tools/adb").install(sample_apk)
        assert runner.commands[0][0] == ["/opt/platform-tools/adb", "install", "-r", str(sample_apk)]

    async def test_apk_mitm(self, runner, sample_apk):
        patched = await ApkMitm(runner).apply_patches(sample_apk)

        assert patched == sample_apk.parent / "app-patched.apk"
        assert patched == patched_path(sample_apk)
        assert runner.commands == [(["apk-mitm", str(sample_apk)], sample_apk.parent)]

    async def test_apk_mitm_missing_file(self, runner, temp_dir):
        with pytest.raises(ValidationError):
            await ApkMitm(runner).apply_patches(temp_dir / "missing.apk")
        assert runner.commands == []

    async def test_editor_command(self, runner, project_dir):
        await EditorOpener(runner, "code --new-window").open(project_dir)
        assert runner.commands[0][0] == ["code", "--new-window", str(project_dir)]


@pytest.mark.asyncio
class TestQuarkReport:
    """Tests for reading quark summary reports back."""

    async def test_ranked_crimes(self, project_dir):
        (project_dir / "quarkReport.json").write_text(
            '{"threat_level": "Moderate Risk", "total_score": 3, "rules_count": 204, "crimes": ['
            '{"crime": "Load external code", "confidence": "60%", "weight": 1.0},'
            '{"crime": "Get location", "confidence": "100%", "weight": 0.5},'
            '{"crime": "Send SMS", "confidence": "100%", "weight": 4.0}]}'
        )

        report = await read_report(project_dir)

        assert report.threat_level == "Moderate Risk"
        assert [c.crime for c in report.ranked()] == ["Send SMS", "Get location", "Load external code"]
        assert [c.crime for c in report.ranked(min_confidence=80)] == ["Send SMS", "Get location"]

    async def test_missing_report(self, project_dir):
        with pytest.raises(ValidationError):
            await read_report(project_dir)

    async def test_malformed_report(self, project_dir):
        (project_dir / "quarkReport.json").write_text("{not json")

        with pytest.raises(ValidationError) as exc_info:
            await read_report(project_dir / "quarkReport.json")

        assert exc_info.value.cause is not None


class TestToolchain:
    """Tests for wiring adapters from a context."""

    def test_quark_missing(self, runner):
        assert not Quark(runner, "no-such-quark-executable").is_installed()

    def test_adapters_share_descriptors(self, context, runner):
        descriptors = default_descriptors(context.config.tools)
        toolchain = build_toolchain(context, descriptors, runner)

        assert toolchain.apktool.apktool is by_name(descriptors)[APKTOOL]
        assert toolchain.jadx.jadx is by_name(descriptors)[JADX]
        assert toolchain.adb.runner is runner
        assert toolchain.git.executable == context.config.tools.git_path
