from __future__ import annotations

import signal

EXIT_OK = 0
EXIT_PRECONDITION = 1
EXIT_STEP_FAILED = 3
EXIT_VERIFY_FAILED = 4
EXIT_CONFIG_ERROR = 5
# Unexpected exception (sysexits EX_SOFTWARE).
EXIT_INTERNAL = 70


class ProvisionError(Exception):
    """Base class for errors raised by the provisioning run."""


class ConfigError(ProvisionError):
    pass


class ValidationError(ProvisionError):
    """A precondition does not hold. Raised before anything is changed."""


class InsufficientPrivilege(ValidationError):
    pass


class UnresolvableUser(ValidationError):
    pass


class DetectionError(ProvisionError):
    pass


class UnsupportedEnvironment(DetectionError):
    pass


class StepActionError(ProvisionError):
    def __init__(self, step_id: str, attempts: int, message: str) -> None:
        super().__init__(f"{step_id}: {message} (after {attempts} attempt(s))")
        self.step_id = step_id
        self.attempts = attempts


class StepVerificationError(ProvisionError):
    def __init__(self, step_id: str, message: str) -> None:
        super().__init__(f"{step_id}: {message}")
        self.step_id = step_id


class RunInterrupted(BaseException):
    """Raised from a signal handler to unwind the run.

    Derives from BaseException so that ``except Exception`` blocks (retry loops,
    step actions) let it through, the same way they let KeyboardInterrupt through.
    """

    def __init__(self, signum: int) -> None:
        self.signum = int(signum)
        super().__init__(f"interrupted by {self.signame}")

    @property
    def signame(self) -> str:
        try:
            return signal.Signals(self.signum).name
        except ValueError:
            return f"signal {self.signum}"

    @property
    def exit_code(self) -> int:
        return 128 + self.signum
