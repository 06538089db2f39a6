"""External event generator — line source, parser and lifecycle supervisor.

Learn: The generator is any program that prints one JSON event per line on
stdout. How it is launched (LineSource) is separate from how lines become
candidate events (parse_line) and from what happens to them
(IngestionPipeline), so tests can swap in a scripted source.
"""

from houseboard.generator.parser import parse_line
from houseboard.generator.source import LineSource, LineStream, ProcessLineSource
from houseboard.generator.supervisor import GeneratorSupervisor, SupervisorState

__all__ = [
    "GeneratorSupervisor",
    "LineSource",
    "LineStream",
    "ProcessLineSource",
    "SupervisorState",
    "parse_line",
]
