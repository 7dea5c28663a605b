import click

from mountshare.exceptions import AbortedByUser, MountShareError
from mountshare.orchestrator import Decision, always

REPORT_COLORS = {
    "ok": "green",
    "warning": "yellow",
    "error": "red",
}

class MutuallyExclusiveOption(click.Option):
    def __init__(self, *args, **kwargs):
        self.mutually_exclusive = set(kwargs.pop("mutually_exclusive", []))
        help = kwargs.get("help", "")
        if self.mutually_exclusive:
            ex_str = ", ".join(self.mutually_exclusive)
            kwargs["help"] = help + (
                " NOTE: This option is mutually exclusive with "
                " options: [%s]." % ex_str
            )
        super(MutuallyExclusiveOption, self).__init__(*args, **kwargs)

    def handle_parse_result(self, ctx, opts, args):
        if self.mutually_exclusive.intersection(opts) and self.name in opts:
            raise click.UsageError(
                "Illegal usage: `%s` is mutually exclusive with "
                " `%s`." % (self.name, ", ".join(self.mutually_exclusive))
            )

        return super(MutuallyExclusiveOption, self).handle_parse_result(ctx, opts, args)


def echo_report(message, level="info"):
    """Print orchestrator progress, colored by level."""
    if level == "warning":
        message = f"WARNING: {message}"
    click.secho(message, fg=REPORT_COLORS.get(level))


def interactive_decide(decision: Decision) -> bool:
    click.secho(f"WARNING: {decision.message}", fg="yellow")
    return click.confirm(decision.question, default=False)


def make_decider(assume_yes=False, assume_no=False):
    if assume_yes:
        return always(True)
    if assume_no:
        return always(False)
    return interactive_decide


def fail(error: MountShareError):
    """Report an error and exit with its status."""
    if isinstance(error, AbortedByUser):
        click.secho(f"ERROR: {error.message} Exiting.", fg="red", err=True)
    else:
        click.secho(f"ERROR: {error}", fg="red", err=True)
    raise SystemExit(error.exit_code)


def human_size(num: int) -> str:
    for unit in ("B", "K", "M", "G", "T"):
        if abs(num) < 1024 or unit == "T":
            return f"{num:.0f}{unit}" if unit == "B" else f"{num:.1f}{unit}"
        num /= 1024
