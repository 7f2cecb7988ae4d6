"""Pydantic models for the generation pipeline and the API surface.

Domain records (knowledge entries, fact rows, daily points), the per-request
grounding context, the four intents, the wire payloads exchanged with the
inference endpoint and the validated results handed back to callers.
"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

PLATFORMS = ("jd_taobao", "xiaohongshu", "douyin", "detail_page")
STRATEGIES = ("launch", "promotion", "clearance", "brand_story")
ASPECT_RATIOS = ("1:1", "3:4", "4:3", "9:16", "16:9")

Platform = Literal["jd_taobao", "xiaohongshu", "douyin", "detail_page"]
Strategy = Literal["launch", "promotion", "clearance", "brand_story"]
AspectRatio = Literal["1:1", "3:4", "4:3", "9:16", "16:9"]


# ---------------------------------------------------------------------------
# Domain records
# ---------------------------------------------------------------------------

class KnowledgeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    category: str = ""
    question: str
    answer: str


class FactRow(BaseModel):
    """One historical transaction fact. ``quantity`` is kept raw; the aggregator neutralises bad values."""
    model_config = ConfigDict(frozen=True)

    identifier: str
    date: str
    quantity: Any = None


class DailyPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    value: float


class ProductAttributes(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    configuration: Optional[str] = None
    selling_price: Optional[float] = None
    promo_price: Optional[float] = None
    fulfillment_mode: Optional[str] = None
    warehouse_stock: Optional[int] = None
    factory_stock: Optional[int] = None


class GroundingContext(BaseModel):
    """Everything a single request is grounded on. Built per request, never stored."""
    product_attributes: ProductAttributes = Field(default_factory=ProductAttributes)
    matched_knowledge: Optional[KnowledgeEntry] = None
    series: Optional[List[DailyPoint]] = None
    user_parameters: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------

class ChatIntent(BaseModel):
    kind: Literal["chat"] = "chat"
    question: str = Field(min_length=1)


class CopyIntent(BaseModel):
    kind: Literal["copy"] = "copy"
    platform: Platform
    strategy: Strategy
    selling_points: Optional[str] = None


class ForecastIntent(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    kind: Literal["forecast"] = "forecast"
    identifier: str = Field(min_length=1)
    model_spec: Optional[str] = None
    factors: str = ""
    horizon: int = Field(gt=0)


class ImageIntent(BaseModel):
    kind: Literal["image"] = "image"
    scene_style: str = "minimalist studio"
    lighting: str = "soft natural light"
    aspect_ratio: AspectRatio = "1:1"
    details: str = ""


Intent = Union[ChatIntent, CopyIntent, ForecastIntent, ImageIntent]

STRUCTURED_INTENTS = frozenset({"copy", "forecast"})


def is_structured(intent: Intent) -> bool:
    return intent.kind in STRUCTURED_INTENTS


# ---------------------------------------------------------------------------
# Wire payloads
# ---------------------------------------------------------------------------

class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user"]
    content: str


class ModelRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    model: str
    messages: List[Message]
    structured_output: Optional[bool] = Field(default=None, alias="structuredOutput")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ImageRequest(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    prompt: str
    aspect_ratio: Optional[str] = Field(default=None, alias="aspectRatio")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Validated results
# ---------------------------------------------------------------------------

class ChatReply(BaseModel):
    text: str


class CopyResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    headline: str
    copy_text: str = Field(alias="copy")
    visual_hooks: str = Field(alias="visualHooks")
    keywords: List[str]


class ForecastPoint(BaseModel):
    date: str
    predicted_sales: float


class ForecastResult(BaseModel):
    summary: str
    analysis: str
    forecast: List[ForecastPoint]

    @computed_field
    @property
    def total_predicted_sales(self) -> float:
        return sum(point.predicted_sales for point in self.forecast)


class ImageResult(BaseModel):
    url: str


ValidatedResult = Union[ChatReply, CopyResult, ForecastResult, ImageResult]


# ---------------------------------------------------------------------------
# Pipeline outcome
# ---------------------------------------------------------------------------

class PipelineState(str, Enum):
    COMPOSED = "COMPOSED"
    DISPATCHED = "DISPATCHED"
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    FAILED_HISTORY = "FAILED_HISTORY"
    FAILED_TRANSPORT = "FAILED_TRANSPORT"
    FAILED_ENDPOINT = "FAILED_ENDPOINT"
    FAILED_SCHEMA = "FAILED_SCHEMA"


TERMINAL_STATES = frozenset({
    PipelineState.VALIDATED,
    PipelineState.FAILED_HISTORY,
    PipelineState.FAILED_TRANSPORT,
    PipelineState.FAILED_ENDPOINT,
    PipelineState.FAILED_SCHEMA,
})


class PipelineFailure(BaseModel):
    type: str
    detail: str
    field: Optional[str] = None
    status: Optional[int] = None
    points: Optional[int] = None


class PipelineOutcome(BaseModel):
    intent: str
    state: PipelineState
    transitions: List[PipelineState] = Field(default_factory=list)
    result: Optional[ValidatedResult] = None
    error: Optional[PipelineFailure] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.state == PipelineState.VALIDATED


# ---------------------------------------------------------------------------
# API I/O
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    question: str = Field(min_length=1)
    product: Optional[ProductAttributes] = None


class CopyRequest(BaseModel):
    platform: Platform
    strategy: Strategy
    product: Optional[ProductAttributes] = None
    selling_points: Optional[str] = None


class ForecastRequest(BaseModel):
    identifier: str = Field(min_length=1)
    horizon: Optional[int] = Field(default=None, gt=0)
    factors: str = ""
    product: Optional[ProductAttributes] = None


class ImageGenerationRequest(BaseModel):
    product: Optional[ProductAttributes] = None
    scene_style: str = "minimalist studio"
    lighting: str = "soft natural light"
    aspect_ratio: AspectRatio = "1:1"
    details: str = ""


class KnowledgeEntryInput(BaseModel):
    category: str = ""
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
