import os
import shutil
import sys
import tempfile


class SystemStrategy:
    """Base class defining the interface for platform-level facts."""

    name = "generic"

    def supports_key_auth(self) -> bool:
        """Whether repositories may authenticate with a private key.

        Key authentication relies on generated POSIX shell scripts.

        Returns:
            bool: True if the helper scripts can run on this platform.
        """
        return True

    def shell(self) -> str:
        """Returns the interpreter declared in the generated SSH sub-wrapper.

        Returns:
            str: The basename of the preferred POSIX shell.
        """
        return "sh"

    def temp_dir(self) -> str:
        """Returns the directory used for helper scripts.

        Returns:
            str: The system temporary directory without a trailing separator.
        """
        return tempfile.gettempdir().rstrip(os.sep) or os.sep


class PosixStrategy(SystemStrategy):
    """System strategy implementation for Linux and macOS."""

    name = "posix"

    def shell(self) -> str:
        """Prefers bash when installed, falling back to sh."""
        return "bash" if shutil.which("bash") else "sh"


class WindowsStrategy(SystemStrategy):
    """System strategy implementation for Windows."""

    name = "windows"

    def supports_key_auth(self) -> bool:
        return False


def get_system() -> SystemStrategy:
    """Factory function to retrieve the platform-specific system strategy.

    Returns:
        SystemStrategy: An instance of PosixStrategy, WindowsStrategy, or the
        base SystemStrategy depending on the operating system.
    """
    if sys.platform == "win32":
        return WindowsStrategy()
    elif sys.platform == "darwin" or sys.platform.startswith("linux"):
        return PosixStrategy()
    else:
        return SystemStrategy()
