from pydantic import BaseModel, Field, model_validator


class ProcessingSettings(BaseModel):
    target_width: int = Field(1200, gt=0)
    target_height: int = Field(1800, gt=0)
    min_area_ratio: float = Field(0.01, ge=0.0, le=1.0)
    max_area_ratio: float = Field(0.99, ge=0.0, le=1.0)
    pdf_scale: float = Field(3.0, gt=0.0)

    @model_validator(mode="after")
    def _check_area_bounds(self):
        if self.min_area_ratio > self.max_area_ratio:
            raise ValueError("min_area_ratio must not exceed max_area_ratio")
        return self


class CropInfo(BaseModel):
    x: int
    y: int
    width: int
    height: int
    rotated: bool = False
    used_fallback: bool = False


class ProcessingResponse(BaseModel):
    label_image: bytes
    preview_image: bytes
    crop_info: CropInfo
