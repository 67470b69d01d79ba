"""wpreplace Shell Functions"""

import os
import subprocess

from wpreplace.core.logging import Log


class CommandExecutionError(Exception):
    """custom Exception for command execution"""

    def __init__(self, message, command=None, returncode=None,
                 stdout='', stderr=''):
        self.command = command or []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class WPShellExec():
    """Method to run shell commands"""

    # Homebrew and /usr/local are prepended so php and wp resolve in subshells
    EXTRA_PATHS = ['/opt/homebrew/bin', '/usr/local/bin']

    @staticmethod
    def environment():
        env = dict(os.environ)
        paths = WPShellExec.EXTRA_PATHS + [env.get('PATH', '')]
        env['PATH'] = os.pathsep.join(p for p in paths if p)
        return env

    def cmd_exec(self, command, cwd=None, timeout=None, log=True):
        """Run a command given as a list and return its stdout.

        Raises CommandExecutionError when the command cannot be started,
        times out or exits non-zero.
        """
        if log:
            Log.debug(self, "Running command: {0}".format(' '.join(command)))
        try:
            result = subprocess.run(command, cwd=cwd, capture_output=True,
                                    text=True, timeout=timeout,
                                    env=WPShellExec.environment())
        except subprocess.TimeoutExpired as e:
            raise CommandExecutionError(
                f"Command timed out after {timeout}s", command=command,
                stderr=str(e)) from e
        except OSError as e:
            raise CommandExecutionError(
                f"Unable to execute command: {e}", command=command,
                stderr=str(e)) from e

        if log:
            Log.debug(self, "Command Output: {0}, \nCommand Error: {1}"
                      .format(result.stdout.strip(), result.stderr.strip()))

        if result.returncode != 0:
            raise CommandExecutionError(
                f"Command exited with status {result.returncode}",
                command=command, returncode=result.returncode,
                stdout=result.stdout, stderr=result.stderr)
        return result.stdout
