"""Overlay graph for FFmpeg filter_complex.

Layer structure (bottom to top):
L0: base video (input 0)
L1: label background (semi-transparent box under the avatar)
L2: avatar (circular photo)
L3: label text (optional, dropped by the fallback render)

The chain is linear and its order never changes: each step draws on top of
the previous one, so the text must come last to stay visible.
"""

from dataclasses import dataclass

from doctor_video.render.assets import AssetRole
from doctor_video.render.geometry import GeometrySpec

BASE_STREAM = "0:v"


@dataclass(frozen=True)
class OverlayStep:
    """One binary overlay: ``overlay`` drawn on ``base`` at (x, y)."""

    base: str
    overlay: str
    x: int
    y: int
    output: str

    def to_filter(self) -> str:
        """Generate overlay filter string."""
        return f"[{self.base}][{self.overlay}]overlay=x={self.x}:y={self.y}[{self.output}]"


@dataclass(frozen=True)
class CompositionGraph:
    """Ordered overlay steps over the base video and the asset inputs.

    ``inputs`` lists the asset roles fed to the encoder after the base
    video, so ``inputs[0]`` is input 1.
    """

    inputs: tuple[AssetRole, ...]
    steps: tuple[OverlayStep, ...]

    @property
    def terminal(self) -> str:
        """Label of the final composited stream."""
        return self.steps[-1].output

    @property
    def includes_text(self) -> bool:
        return AssetRole.LABEL_TEXT in self.inputs

    def stream_for(self, role: AssetRole) -> str:
        return f"{self.inputs.index(role) + 1}:v"

    def validate(self) -> None:
        """Check that every step only reads streams that already exist.

        Raises:
            ValueError: On a forward, cyclic or unknown stream reference
        """
        if not self.steps:
            raise ValueError("Composition graph has no steps")
        available = {BASE_STREAM} | {f"{i + 1}:v" for i in range(len(self.inputs))}
        for index, step in enumerate(self.steps):
            for ref in (step.base, step.overlay):
                if ref not in available:
                    raise ValueError(f"Step {index} references unavailable stream [{ref}]")
            if step.output in available:
                raise ValueError(f"Step {index} redefines stream [{step.output}]")
            available.add(step.output)

    def to_filter_complex(self) -> str:
        return ";".join(step.to_filter() for step in self.steps)


def build_graph(geometry: GeometrySpec, include_text: bool) -> CompositionGraph:
    """Build the overlay chain for one render attempt.

    Args:
        geometry: Pixel layout for the job
        include_text: False for the fallback render without the name text

    Returns:
        CompositionGraph whose terminal stream is the text step's output, or
        the avatar step's output when text is excluded
    """
    inputs = [AssetRole.AVATAR, AssetRole.LABEL_BACKGROUND]
    if include_text:
        inputs.append(AssetRole.LABEL_TEXT)

    def stream(role: AssetRole) -> str:
        return f"{inputs.index(role) + 1}:v"

    steps = [
        OverlayStep(
            base=BASE_STREAM,
            overlay=stream(AssetRole.LABEL_BACKGROUND),
            x=geometry.label_x,
            y=geometry.label_y,
            output="bg",
        ),
        OverlayStep(
            base="bg",
            overlay=stream(AssetRole.AVATAR),
            x=geometry.anchor_x,
            y=geometry.anchor_y,
            output="avatar",
        ),
    ]
    if include_text:
        steps.append(
            OverlayStep(
                base="avatar",
                overlay=stream(AssetRole.LABEL_TEXT),
                x=geometry.label_x,
                y=geometry.label_y,
                output="label",
            )
        )

    graph = CompositionGraph(inputs=tuple(inputs), steps=tuple(steps))
    graph.validate()
    return graph
