import os
import shutil
import filecmp
import logging
import subprocess
from datetime import datetime

COMMAND_NOT_FOUND = 127


class InfoFilter(logging.Filter):
    """Filter to allow only step banners, failures and the summary on the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "===",
            "Deploy finished in",
            "Dry run:",
            "Skipping",
            "Published directory",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


class StepResult:
    """Outcome of one deploy step."""

    def __init__(self, name, returncode=0, error=None, skipped=False):
        self.name = name
        self.returncode = returncode
        self.error = error
        self.skipped = skipped

    @property
    def ok(self):
        return self.returncode == 0 and not self.skipped

    def __repr__(self):
        return f"StepResult({self.name!r}, returncode={self.returncode}, skipped={self.skipped})"


class DeployReport:
    """Results of a deploy run, in step order."""

    def __init__(self, steps=None):
        self.steps = list(steps or [])

    @property
    def failed_steps(self):
        return [step for step in self.steps if not step.skipped and step.returncode != 0]

    @property
    def ok(self):
        return not self.failed_steps and not any(step.skipped for step in self.steps)

    @property
    def exit_code(self):
        # Last step that ran; when the run stopped early that is the failure
        ran = [step for step in self.steps if not step.skipped]
        if not ran:
            return 0
        return ran[-1].returncode


class Deployer:
    """
    Rebuild the blog with the external generator and publish it.

    The five steps always run in order: clean, generate, remove the
    published directory, copy the generated output there, reload the web
    server. A failing step does not stop the ones after it unless
    stop_on_error is set.
    """

    def __init__(self, site_dir='.', generated='public', publish_dir='/var/www/html/kimblog',
                 generator=None, clean_command='clean', generate_command='g',
                 reload_command=None, stop_on_error=False, dry_run=False, log_dir='logs'):
        self.site_dir = os.path.abspath(site_dir)
        self.generated_dir = os.path.join(self.site_dir, generated)
        self.publish_dir = os.path.abspath(os.path.join(self.site_dir, publish_dir))
        self.generator = list(generator or ['npx', 'hexo'])
        self.clean_command = clean_command
        self.generate_command = generate_command
        self.reload_command = list(reload_command or ['nginx', '-s', 'reload'])
        self.stop_on_error = stop_on_error
        self.dry_run = dry_run
        self.log_dir = log_dir

        self.setup_logging()

    @classmethod
    def from_settings(cls, settings, dry_run=False):
        return cls(
            site_dir=settings['site'],
            generated=settings['generated'],
            publish_dir=settings['publish'],
            generator=settings['generator'],
            clean_command=settings['clean_command'],
            generate_command=settings['generate_command'],
            reload_command=settings['reload'],
            stop_on_error=bool(settings['stop_on_error']),
            dry_run=dry_run,
            log_dir=settings['log_dir'],
        )

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Kimblog')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_formatter = logging.Formatter('%(message)s')
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

            # File handler for all logs
            if self.log_dir and not self.dry_run:
                logs_dir = os.path.join(self.site_dir, self.log_dir)
                os.makedirs(logs_dir, exist_ok=True)
                log_filename = datetime.now().strftime('kimblog_%Y-%m-%d_%H-%M-%S.log')
                log_filepath = os.path.join(logs_dir, log_filename)

                file_handler = logging.FileHandler(log_filepath)
                file_handler.setLevel(logging.DEBUG)
                file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
                file_handler.setFormatter(file_formatter)
                self.logger.addHandler(file_handler)

    def steps(self):
        """The deploy sequence as (name, banner, callable) tuples."""
        publish_parent = os.path.dirname(self.publish_dir)
        server = os.path.basename(self.reload_command[0])
        return [
            ('clean', '===clean===', self.clean),
            ('generate', '===generate===', self.generate),
            ('remove', f'===copy to {publish_parent}===', self.remove_published),
            ('copy', None, self.copy_output),
            ('reload', f'===reload {server}===', self.reload),
        ]

    def run_command(self, name, command):
        """Run an external command in the site directory, returning its StepResult."""
        if self.dry_run:
            self.logger.info(f"Dry run: would run {' '.join(command)} in {self.site_dir}")
            return StepResult(name)

        self.logger.debug(f"Running {command} in {self.site_dir}")
        try:
            completed = subprocess.run(command, cwd=self.site_dir)
        except FileNotFoundError as e:
            self.logger.error(f"{name}: command not found: {command[0]} ({e})")
            return StepResult(name, COMMAND_NOT_FOUND, error=str(e))
        except OSError as e:
            self.logger.error(f"{name}: could not run {command[0]}: {e}")
            return StepResult(name, 1, error=str(e))

        if completed.returncode != 0:
            self.logger.error(f"{name}: {' '.join(command)} exited with status {completed.returncode}")
        return StepResult(name, completed.returncode)

    def clean(self):
        """Remove the generator's previous output."""
        return self.run_command('clean', self.generator + [self.clean_command])

    def generate(self):
        """Render the content into the generated directory."""
        return self.run_command('generate', self.generator + [self.generate_command])

    def remove_published(self):
        """Delete the published directory; a missing one is not an error."""
        if self.dry_run:
            self.logger.info(f"Dry run: would remove {self.publish_dir}")
            return StepResult('remove')

        if not os.path.lexists(self.publish_dir):
            self.logger.debug(f"Nothing to remove at {self.publish_dir}")
            return StepResult('remove')
        try:
            if os.path.isdir(self.publish_dir) and not os.path.islink(self.publish_dir):
                shutil.rmtree(self.publish_dir)
            else:
                os.remove(self.publish_dir)
        except OSError as e:
            self.logger.error(f"remove: failed to remove {self.publish_dir}: {e}")
            return StepResult('remove', 1, error=str(e))
        self.logger.debug(f"Removed {self.publish_dir}")
        return StepResult('remove')

    def copy_output(self):
        """Copy the generated directory to the published location."""
        if self.dry_run:
            self.logger.info(f"Dry run: would copy {self.generated_dir} to {self.publish_dir}")
            return StepResult('copy')

        if not os.path.isdir(self.generated_dir):
            message = f"generated directory does not exist: {self.generated_dir}"
            self.logger.error(f"copy: {message}")
            return StepResult('copy', 1, error=message)
        try:
            shutil.copytree(self.generated_dir, self.publish_dir, symlinks=True)
        except (OSError, shutil.Error) as e:
            self.logger.error(f"copy: failed to copy {self.generated_dir} to {self.publish_dir}: {e}")
            return StepResult('copy', 1, error=str(e))
        self.logger.debug(f"Copied {self.generated_dir} -> {self.publish_dir}")
        return StepResult('copy')

    def reload(self):
        """Signal the web server to reload."""
        return self.run_command('reload', self.reload_command)

    def deploy(self):
        """Run every step in order and return a DeployReport."""
        start_time = datetime.now()
        report = DeployReport()
        stopped = False

        for name, banner, action in self.steps():
            if stopped:
                self.logger.info(f"Skipping {name} after earlier failure")
                report.steps.append(StepResult(name, skipped=True))
                continue
            if banner:
                self.logger.info(banner)
            result = action()
            report.steps.append(result)
            if not result.ok and self.stop_on_error:
                stopped = True

        elapsed = (datetime.now() - start_time).total_seconds()
        self.logger.info(f"Deploy finished in {elapsed:.3f} seconds with status {report.exit_code}.")
        return report

    def verify(self):
        """
        Compare the generated and published directories byte for byte.

        Returns:
            Sorted relative paths that differ or exist on one side only

        Raises:
            FileNotFoundError: either directory is missing
        """
        for directory in (self.generated_dir, self.publish_dir):
            if not os.path.isdir(directory):
                raise FileNotFoundError(f"Directory not found: {directory}")

        differences = []
        self._compare(self.generated_dir, self.publish_dir, '', differences)
        if differences:
            self.logger.warning(f"Published directory differs from {self.generated_dir} in {len(differences)} path(s)")
        else:
            self.logger.info("Published directory matches the generated output")
        return sorted(differences)

    def _compare(self, left, right, prefix, differences):
        comparison = filecmp.dircmp(left, right, ignore=[])
        for name in comparison.left_only + comparison.right_only + comparison.common_funny:
            differences.append(os.path.join(prefix, name))
        _match, mismatch, errors = filecmp.cmpfiles(left, right, comparison.common_files, shallow=False)
        for name in mismatch + errors:
            differences.append(os.path.join(prefix, name))
        for name in comparison.common_dirs:
            self._compare(os.path.join(left, name), os.path.join(right, name),
                          os.path.join(prefix, name), differences)
