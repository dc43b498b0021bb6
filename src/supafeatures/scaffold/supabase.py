"""
Supabase CLI integration.

Wraps the `supabase` executable for migration and edge function
scaffolding and basic project checks.
"""

import re
import shutil
import subprocess
from pathlib import Path

from supafeatures.errors import ScaffoldError
from supafeatures.scaffold.base import ScaffoldTool
from supafeatures.utils.logging import get_logger

log = get_logger(__name__)

SUPABASE_EXECUTABLE = "supabase"
REQUIRED_PROJECT_DIRS: tuple[str, ...] = ("migrations", "functions")

_MIGRATION_FILE_RE = re.compile(r"migrations[/\\](\d+_[^\s/\\]+\.sql)")
_VERSION_RE = re.compile(r"(\d+\.\d+\.\d+)")


def find_supabase_cli() -> Path | None:
    """
    Find the supabase executable.

    Searches PATH first, then common installation locations.

    Returns:
        Path to executable or None if not found.
    """
    for exe_name in (SUPABASE_EXECUTABLE, f"{SUPABASE_EXECUTABLE}.exe"):
        if (path := shutil.which(exe_name)) is not None:
            return Path(path)

    common_paths = [
        Path.cwd() / "node_modules" / ".bin" / SUPABASE_EXECUTABLE,
        Path("/opt/homebrew/bin") / SUPABASE_EXECUTABLE,
        Path("/usr/local/bin") / SUPABASE_EXECUTABLE,
    ]
    for path in common_paths:
        if path.exists():
            return path

    return None


class SupabaseCLI(ScaffoldTool):
    """
    ScaffoldTool backed by the Supabase CLI.

    The CLI always works on ``<workdir>/supabase``, so the working directory
    is the parent of the configured Supabase directory.
    """

    def __init__(
        self,
        supabase_dir: Path,
        *,
        executable: Path | None = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize the CLI wrapper.

        Args:
            supabase_dir: The project's Supabase directory.
            executable: Explicit path to the CLI (searched for if None).
            timeout: Seconds to wait for each CLI invocation.
        """
        self.supabase_dir = supabase_dir
        self.workdir = supabase_dir.parent
        self.executable = executable
        self.timeout = timeout
        if supabase_dir.name != "supabase":
            log.warning(
                "Supabase CLI only scaffolds into a directory named 'supabase'",
                supabase_dir=str(supabase_dir),
            )

    @property
    def migrations_dir(self) -> Path:
        return self.supabase_dir / "migrations"

    @property
    def functions_dir(self) -> Path:
        return self.supabase_dir / "functions"

    def _resolve_executable(self) -> Path:
        if self.executable is None:
            self.executable = find_supabase_cli()
        if self.executable is None:
            msg = "Supabase CLI not found"
            raise ScaffoldError(msg)
        return self.executable

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        cmd = [str(self._resolve_executable()), *args]
        log.debug("Running Supabase CLI", cmd=cmd, cwd=str(self.workdir))
        try:
            return subprocess.run(
                cmd,
                cwd=self.workdir,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or e.stdout or "").strip()
            msg = f"`supabase {' '.join(args)}` failed: {detail or e}"
            raise ScaffoldError(msg) from e
        except subprocess.TimeoutExpired as e:
            msg = f"`supabase {' '.join(args)}` timed out after {self.timeout}s"
            raise ScaffoldError(msg) from e
        except OSError as e:
            msg = f"Could not run Supabase CLI: {e}"
            raise ScaffoldError(msg) from e

    def is_available(self) -> bool:
        try:
            self._run("--version")
        except ScaffoldError:
            return False
        return True

    def version(self) -> str | None:
        """Installed CLI version, or None if it cannot be determined."""
        try:
            result = self._run("--version")
        except ScaffoldError:
            return None
        match = _VERSION_RE.search(result.stdout)
        return match.group(1) if match else None

    def create_migration_artifact(self, name: str) -> Path:
        self._require_project()
        result = self._run("migration", "new", name)
        # Newer CLI versions report the created file on stderr
        match = _MIGRATION_FILE_RE.search(f"{result.stdout}\n{result.stderr}")
        if match is None:
            msg = "Could not extract migration filename from CLI output"
            raise ScaffoldError(msg)
        path = self.migrations_dir / match.group(1)
        log.info("Created migration", path=str(path))
        return path

    def create_function_scaffold(self, name: str) -> None:
        self._require_project()
        self._run("functions", "new", name)
        log.info("Created function scaffold", name=name)

    def is_project(self) -> bool:
        """Whether the Supabase directory holds a config.toml."""
        return (self.supabase_dir / "config.toml").is_file()

    def validate_project(self) -> list[str]:
        """
        Validate the project layout.

        Returns:
            Warnings for missing optional directories.

        Raises:
            ScaffoldError: If the Supabase directory or config.toml is missing.
        """
        if not self.supabase_dir.is_dir():
            msg = f"No Supabase directory found at {self.supabase_dir}. Run 'supabase init' first."
            raise ScaffoldError(msg)
        if not self.is_project():
            msg = f"{self.supabase_dir / 'config.toml'} not found. This may not be a valid Supabase project."
            raise ScaffoldError(msg)

        warnings = []
        for dirname in REQUIRED_PROJECT_DIRS:
            if not (self.supabase_dir / dirname).is_dir():
                warnings.append(f"{dirname} directory not found at {self.supabase_dir / dirname}")
        return warnings

    def init_project(self) -> None:
        """Run `supabase init` in the working directory."""
        if self.supabase_dir.exists():
            msg = f"Supabase project already exists at: {self.supabase_dir}"
            raise ScaffoldError(msg)
        self._run("init")
        log.info("Initialized Supabase project", path=str(self.supabase_dir))

    def _require_project(self) -> None:
        if not self.is_project():
            msg = 'Not a Supabase project. Run "supabase init" first.'
            raise ScaffoldError(msg)
