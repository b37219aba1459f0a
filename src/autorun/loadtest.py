"""Load generation against the ingress target URL."""

import logging
import shlex
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from src.autorun.config import K6_URL_PLACEHOLDER
from src.autorun.exceptions import LoadTestError
from src.autorun.models import LoadTestResult
from src.autorun.runner import CommandRunner

logger = logging.getLogger(__name__)


class LoadBackend:
    """A load generator driven at a given level; level 0 disables it."""

    name = "backend"

    def __init__(self, runner: CommandRunner, level: int, params: str = ""):
        self.runner = runner
        self.level = level
        self.params = shlex.split(params)

    @property
    def enabled(self) -> bool:
        return self.level > 0

    def run(self, url: str) -> LoadTestResult:
        raise NotImplementedError


class FortioBackend(LoadBackend):
    """Fortio, driven by number of connections."""

    name = "fortio"

    def __init__(
        self, runner: CommandRunner, level: int, params: str = "", executable: str = "fortio"
    ):
        super().__init__(runner, level, params)
        self.executable = executable

    def run(self, url: str) -> LoadTestResult:
        result = self.runner.run(
            [self.executable, "load", "-c", str(self.level), *self.params, url], capture=False
        )
        return LoadTestResult(backend=self.name, level=self.level, returncode=result.returncode)


class K6Backend(LoadBackend):
    """Grafana k6, driven by number of virtual users.

    The script is the template with its <URL> placeholder filled in, fed to
    `k6 run -` on stdin.
    """

    name = "k6"

    def __init__(
        self,
        runner: CommandRunner,
        level: int,
        params: str = "",
        executable: str = "k6",
        template: Optional[Path] = None,
    ):
        super().__init__(runner, level, params)
        self.executable = executable
        self.template = template

    def script(self, url: str) -> str:
        if self.template is None:
            raise LoadTestError(self.name, "no k6 script template configured")
        try:
            text = Path(self.template).read_text(encoding="utf-8")
        except OSError as e:
            raise LoadTestError(self.name, f"cannot read template {self.template}: {e}") from e
        return text.replace(K6_URL_PLACEHOLDER, url)

    def run(self, url: str) -> LoadTestResult:
        result = self.runner.run(
            [self.executable, "run", "--vus", str(self.level), *self.params, "-"],
            capture=False,
            input=self.script(url),
        )
        return LoadTestResult(backend=self.name, level=self.level, returncode=result.returncode)


class LoadTestDriver:
    """Runs each enabled backend once against the target URL."""

    def __init__(self, backends: Sequence[LoadBackend]):
        self.backends = list(backends)

    def run(self, url: str) -> Tuple[List[LoadTestResult], List[LoadTestError]]:
        """Invoke every enabled backend in turn.

        A failing backend does not stop the next one.

        Returns:
            Results of the backends that ran, and the errors of those that failed
        """
        results: List[LoadTestResult] = []
        errors: List[LoadTestError] = []
        for backend in self.backends:
            if not backend.enabled:
                logger.info("Skipping %s (level 0)", backend.name)
                continue

            print(f"Running {backend.name} against {url} ...")
            try:
                result = backend.run(url)
            except LoadTestError as e:
                logger.error("%s", e)
                errors.append(e)
                continue

            results.append(result)
            if not result.ok:
                error = LoadTestError(backend.name, f"exited with code {result.returncode}")
                logger.error("%s", error)
                errors.append(error)
        return results, errors
