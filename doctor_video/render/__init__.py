from doctor_video.render.assets import AssetGenerator, AssetRole, AssetSet
from doctor_video.render.composition import CompositionGraph, build_graph
from doctor_video.render.executor import RenderExecutor, RenderResult
from doctor_video.render.fallback import DegradeRetryController
from doctor_video.render.geometry import GeometrySpec, LabelLayout, compute_geometry
from doctor_video.render.job import RenderJob
from doctor_video.render.pipeline import VideoJobPipeline

__all__ = [
    "VideoJobPipeline",
    "RenderJob",
    "RenderExecutor",
    "RenderResult",
    "DegradeRetryController",
    "AssetGenerator",
    "AssetRole",
    "AssetSet",
    "CompositionGraph",
    "build_graph",
    "GeometrySpec",
    "LabelLayout",
    "compute_geometry",
]
