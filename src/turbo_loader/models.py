from __future__ import annotations

from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from turbo_loader.units import to_mm

Unit = Literal["mm", "cm", "m"]

# (length, height, width) in millimeters
Orientation = Tuple[int, int, int]


class Box(BaseModel):
    """Box model with dimensions, optional weight and value."""

    model_config = ConfigDict(frozen=True)

    length: float = Field(gt=0, allow_inf_nan=False, description="Length of the box")
    width: float = Field(gt=0, allow_inf_nan=False, description="Width of the box")
    height: float = Field(gt=0, allow_inf_nan=False, description="Height of the box")
    weight: Optional[float] = Field(
        default=None,
        gt=0,
        allow_inf_nan=False,
        description="Weight in kg")
    value: Optional[float] = Field(
        default=None,
        ge=0,
        allow_inf_nan=False,
        description="Monetary value of one box")
    unit: Unit = Field(default="mm", description="Unit of the dimensions")

    def dims_mm(self) -> tuple[int, int, int]:
        """(length, width, height) rounded to whole millimeters."""
        dims = (
            to_mm(self.length, self.unit),
            to_mm(self.width, self.unit),
            to_mm(self.height, self.unit),
        )
        if min(dims) <= 0:
            raise ValueError(
                f"Box dimensions {self.length} x {self.width} x {self.height} {self.unit} "
                f"round to {dims} mm; every dimension must be at least 1 mm"
            )
        return dims

    @property
    def volume_mm3(self) -> int:
        length, width, height = self.dims_mm()
        return length * width * height


class Container(BaseModel):
    """Container model with dimensions and load capacity."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="custom", description="Catalog identifier")
    name: str = Field(default="Custom container", description="Display name")
    length: float = Field(gt=0, allow_inf_nan=False, description="Inner length of the container")
    width: float = Field(gt=0, allow_inf_nan=False, description="Inner width of the container")
    height: float = Field(gt=0, allow_inf_nan=False, description="Inner height of the container")
    max_load: Optional[float] = Field(
        default=None,
        gt=0,
        allow_inf_nan=False,
        description="Maximum load in kg")
    unit: Unit = Field(default="mm", description="Unit of the dimensions")

    def dims_mm(self) -> tuple[int, int, int]:
        """(length, width, height) rounded to whole millimeters."""
        dims = (
            to_mm(self.length, self.unit),
            to_mm(self.width, self.unit),
            to_mm(self.height, self.unit),
        )
        if min(dims) <= 0:
            raise ValueError(
                f"Container dimensions {self.length} x {self.width} x {self.height} {self.unit} "
                f"round to {dims} mm; every dimension must be at least 1 mm"
            )
        return dims

    @property
    def volume_mm3(self) -> int:
        length, width, height = self.dims_mm()
        return length * width * height


class Placement(BaseModel):
    """Placement model representing box position and oriented dimensions (mm)."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0, description="Position along the container length")
    y: int = Field(ge=0, description="Position along the container height")
    z: int = Field(ge=0, description="Position along the container width")

    # Store the ACTUAL placed dimensions after rotation: (L, H, W)
    rotation: Orientation = Field(
        description="Oriented dimensions (length, height, width) of the placed box"
    )

    @property
    def end_x(self) -> int:
        return self.x + self.rotation[0]

    @property
    def end_y(self) -> int:
        return self.y + self.rotation[1]

    @property
    def end_z(self) -> int:
        return self.z + self.rotation[2]

    @property
    def bounds(self) -> tuple[int, int, int, int, int, int]:
        length, height, width = self.rotation
        return (self.x, self.y, self.z, self.x + length, self.y + height, self.z + width)

    def moved(self, **position: int) -> "Placement":
        """Copy of this placement with some of x/y/z replaced."""
        return self.model_copy(update=position)


class StageReport(BaseModel):
    """Timing and yield of one pipeline stage."""

    stage: str
    time_ms: float = Field(ge=0)
    boxes_added: Optional[int] = None


class PackResult(BaseModel):
    """Result returned by the packing pipeline."""

    total_boxes: int = 0
    placements: list[Placement] = Field(default_factory=list)
    used_volume: float = 0.0
    container_volume: float = 0.0
    fill_rate: float = 0.0
    stages: list[StageReport] = Field(default_factory=list)
