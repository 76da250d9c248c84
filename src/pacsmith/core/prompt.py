"""Terminal confirmations used when config.interactive is set."""


def confirm(question: str, default: bool = False) -> bool:
    """Ask a yes/no question on the terminal.

    An empty answer or EOF selects the default.
    """
    suffix = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            answer = input(f"{question} {suffix} ").strip().lower()
        except EOFError:
            return default
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please answer 'y' or 'n'.")


def choose(question: str, options: list[str], default: str) -> str:
    """Ask the operator to pick one of several options by name."""
    listed = "/".join(
        opt.upper() if opt == default else opt for opt in options
    )
    while True:
        try:
            answer = input(f"{question} [{listed}] ").strip().lower()
        except EOFError:
            return default
        if not answer:
            return default
        if answer in options:
            return answer
        print(f"Please choose one of: {', '.join(options)}.")
