import dataclasses

from rich.pretty import pprint

from helmsman import *


@dataclasses.dataclass
class Build:
    target: str = positional(0, default=".", usage="package to build")
    output: str = option(short="o", default="a.out", usage="output file")
    optimize: bool = option(short="O", default=False, usage="enable optimizations")
    jobs: int = option(short="j", default=1, usage="parallel jobs")


@infer
def build(config: Build):
    """Compile a package."""
    pprint(config)


flags = FlagSet("server start")
port = flags.integer("port", "p", 8080, "listen port")
debug = flags.boolean("debug", "d", usage="verbose diagnostics")


@command(flags)
def start(flagset, args):
    """Start the development server."""
    pprint({"port": port.value, "debug": debug.value, "args": args})


app = Dispatcher("demo", shell=True)
app.dispatch("build", build)
app.dispatch("server start", start)


if __name__ == '__main__':
    invoke(app)
