"""Test configuration for APKForge."""

import io
import tempfile
import zipfile
from pathlib import Path

import pytest
import structlog

from apkforge.core.config import Config, ProjectConfig
from apkforge.core.context import ForgeContext
from apkforge.core.exceptions import NonZeroExitError
from apkforge.services.pipeline import PipelineExecutor
from apkforge.services.process import ProcessOutput, ProcessRunner
from apkforge.services.split import SplitPackageCoordinator
from apkforge.tools.interfaces import (
    Analyzer,
    Builder,
    Decoder,
    Decompiler,
    Installer,
    VcsInitializer,
    WorkspaceOpener,
)


class CallLog(list):
    """Ordered record of (capability, operation, argument) calls across all fakes."""

    def of(self, operation):
        return [call for call in self if call[0] == operation]


def _fail(name, fail_for):
    if name in fail_for:
        raise NonZeroExitError(message=f"{name} failed", command=["fake", name], returncode=1)


class FakeDecoder(Decoder):
    def __init__(self, log):
        self.log = log
        self.fail_for = set()

    async def decode(self, apk_path, project_dir, args=()):
        self.log.append(("decode", apk_path.name, project_dir, list(args)))
        _fail(apk_path.name, self.fail_for)
        project_dir.mkdir(parents=True, exist_ok=True)
        (project_dir / "apktool.yml").write_text(f"apkFileName: {apk_path.name}\n")


class FakeDecompiler(Decompiler):
    def __init__(self, log):
        self.log = log
        self.fail_for = set()

    async def decompile(self, apk_path, project_dir, args=()):
        self.log.append(("decompile", apk_path.name, project_dir, list(args)))
        _fail(apk_path.name, self.fail_for)


class FakeAnalyzer(Analyzer):
    def __init__(self, log):
        self.log = log
        self.installed = True
        self.fail_for = set()

    def is_installed(self):
        return self.installed

    async def analyze(self, apk_path, project_dir):
        self.log.append(("analyze", apk_path.name, project_dir, []))
        _fail(apk_path.name, self.fail_for)


class FakeVcs(VcsInitializer):
    def __init__(self, log):
        self.log = log
        self.fail = False

    async def init(self, project_dir, message):
        self.log.append(("vcs_init", project_dir.name, project_dir, [message]))
        if self.fail:
            raise NonZeroExitError(message="git failed", command=["git", "init"], returncode=128)


class FakeOpener(WorkspaceOpener):
    def __init__(self, log):
        self.log = log

    async def open(self, project_dir):
        self.log.append(("open", project_dir.name, project_dir, []))


class FakeBuilder(Builder):
    def __init__(self, log):
        self.log = log
        self.fail_for = set()

    def output_path(self, project_dir):
        return project_dir / "dist" / f"{project_dir.name}.apk"

    async def rebuild(self, manifest_path, args=()):
        project_dir = manifest_path.parent
        self.log.append(("rebuild", project_dir.name, project_dir, list(args)))
        _fail(project_dir.name, self.fail_for)
        output = self.output_path(project_dir)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(b"rebuilt")
        return output


class FakeInstaller(Installer):
    def __init__(self, log):
        self.log = log
        self.fail_for = set()

    async def install(self, apk_path):
        self.log.append(("install", apk_path.name, apk_path, []))
        _fail(apk_path.name, self.fail_for)


class RecordingRunner(ProcessRunner):
    """Process runner that records commands instead of running them."""

    def __init__(self):
        self.commands = []
        self.fail_when = None

    async def invoke(self, tool, args=(), working_dir=None):
        cmd = [str(tool), *(str(a) for a in args)]
        self.commands.append((cmd, working_dir))
        if self.fail_when and self.fail_when(cmd):
            raise NonZeroExitError(message="failed", command=cmd, returncode=1)
        return ProcessOutput(command=cmd)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo logging configuration done by a test so later tests do not print to a closed stream."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
            The directory is automatically cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_apk_bytes():
    """Create minimal valid APK-like bytes for testing.

    Returns:
        bytes: A ZIP archive with an AndroidManifest.xml and a classes.dex.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("AndroidManifest.xml", b'<?xml version="1.0"?><manifest/>')
        zf.writestr("classes.dex", b"dex\n035\x00")
    return buffer.getvalue()


@pytest.fixture
def sample_apk(temp_dir, sample_apk_bytes):
    """Create a sample APK file for testing.

    Returns:
        Path: The path to ``app.apk`` inside the temporary directory.
    """
    apk_path = temp_dir / "app.apk"
    apk_path.write_bytes(sample_apk_bytes)
    return apk_path


@pytest.fixture
def split_apks(temp_dir, sample_apk, sample_apk_bytes):
    """A base package with two configuration splits next to it.

    Returns:
        list[Path]: base, arm64 split and locale split.
    """
    splits = [temp_dir / "app.config.en.apk", temp_dir / "app.config.arm64_v8a.apk"]
    for split in splits:
        split.write_bytes(sample_apk_bytes)
    return [sample_apk, *splits]


@pytest.fixture
def config(temp_dir):
    """Configuration pointing the data directory into the temporary directory."""
    return Config(
        data_dir=temp_dir / "data",
        non_interactive=True,
        project=ProjectConfig(init_project_dir_as_git=False),
    )


@pytest.fixture
def context(config):
    ctx = ForgeContext.create(config)
    yield ctx
    ctx.close()


@pytest.fixture
def call_log():
    return CallLog()


@pytest.fixture
def decoder(call_log):
    return FakeDecoder(call_log)


@pytest.fixture
def decompiler(call_log):
    return FakeDecompiler(call_log)


@pytest.fixture
def analyzer(call_log):
    return FakeAnalyzer(call_log)


@pytest.fixture
def vcs(call_log):
    return FakeVcs(call_log)


@pytest.fixture
def opener(call_log):
    return FakeOpener(call_log)


@pytest.fixture
def builder(call_log):
    return FakeBuilder(call_log)


@pytest.fixture
def installer(call_log):
    return FakeInstaller(call_log)


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def executor(context, decoder, decompiler, analyzer, vcs, opener):
    return PipelineExecutor(context, decoder, decompiler, analyzer, vcs, opener)


@pytest.fixture
def coordinator(executor, builder, installer):
    return SplitPackageCoordinator(executor, builder, installer)
