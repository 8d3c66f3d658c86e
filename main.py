from rich.pretty import pprint

from tusks import *


class Root(Parameters):
    verbose: bool = Argument(short="v", help="print more")


class Remote(Parameters):
    super_ = Ancestor(Root)
    url = Argument(default="https://example.org", help="remote url")


git = Scope("git", Root, tasks=Tasks(), help="a tiny git")
remote = git.scope("remote", Remote, help="manage remotes")


@remote.tusk
def add(context: Remote, name, /, *, fetch: bool = False):
    """Add a remote."""
    pprint(context)
    pprint({"name": name, "fetch": fetch, "verbose": context.super_.verbose})


if __name__ == '__main__':
    unit = compile(git, shell=True, fancy=True)
    pprint(unit.schema)
    raise SystemExit(unit().exitcode)
