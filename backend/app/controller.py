"""Controller / Orchestrator for the grounded generation pipeline.

Each run_* call drives one request through
COMPOSED -> DISPATCHED -> RECEIVED -> VALIDATED (or a FAILED_* state) and hands
back a PipelineOutcome. Pipeline failures never escape as exceptions.
"""
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..schemas.io_models import (
    ChatIntent,
    CopyIntent,
    FactRow,
    ForecastIntent,
    GroundingContext,
    ImageIntent,
    ImageRequest,
    Intent,
    KnowledgeEntry,
    PipelineFailure,
    PipelineOutcome,
    PipelineState,
    ProductAttributes,
)
from ..utils.logger import get_logger
from .config import Config
from .errors import (
    InsufficientHistory,
    LinkError,
    PipelineError,
    SchemaViolation,
    TransportError,
)
from .generate import GenerationClient, InferenceSettings
from .knowledge import KnowledgeMatcher
from .postprocess import Postprocessor
from .prompt_builder import PromptBuilder
from .series import SeriesAggregator, history_window

logger = get_logger()


class _Run:
    """Tracks the state transitions of a single request."""

    def __init__(self, intent: str):
        self.intent = intent
        self.transitions: List[PipelineState] = []

    def enter(self, state: PipelineState) -> None:
        self.transitions.append(state)
        logger.info("[PIPELINE] %s -> %s", self.intent, state.value)

    def finish(self, state: PipelineState, result=None, error: Optional[PipelineError] = None) -> PipelineOutcome:
        self.enter(state)
        failure = None
        message = ""
        if error is not None:
            message = error.operator_message()
            failure = PipelineFailure(
                type=type(error).__name__,
                detail=str(error),
                field=getattr(error, "field", None),
                status=getattr(error, "status", None),
                points=getattr(error, "points", None),
            )
            logger.warning("[PIPELINE] %s failed in %s: %s", self.intent, state.value, error)
        return PipelineOutcome(
            intent=self.intent,
            state=state,
            transitions=list(self.transitions),
            result=result,
            error=failure,
            message=message,
        )


def _failed_state(error: LinkError) -> PipelineState:
    if isinstance(error, TransportError):
        return PipelineState.FAILED_TRANSPORT
    # EndpointError and EmptyResponseError: the endpoint answered but could not be used
    return PipelineState.FAILED_ENDPOINT


class Controller:
    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        builder: Optional[PromptBuilder] = None,
        matcher: Optional[KnowledgeMatcher] = None,
        aggregator: Optional[SeriesAggregator] = None,
        postprocessor: Optional[Postprocessor] = None,
        min_history_points: int = Config.MIN_HISTORY_POINTS,
        history_days: int = Config.FORECAST_HISTORY_DAYS,
    ):
        self.client = client or GenerationClient(InferenceSettings.from_config())
        self.builder = builder or PromptBuilder(model=self.client.settings.model)
        self.matcher = matcher or KnowledgeMatcher()
        self.aggregator = aggregator or SeriesAggregator()
        self.postprocessor = postprocessor or Postprocessor()
        self.min_history_points = min_history_points
        self.history_days = history_days

    def _dispatch(self, run: _Run, intent: Intent, context: GroundingContext) -> PipelineOutcome:
        request = self.builder.compose(intent, context)
        run.enter(PipelineState.COMPOSED)

        run.enter(PipelineState.DISPATCHED)
        try:
            if isinstance(request, ImageRequest):
                raw = self.client.invoke_image(request)
            else:
                raw = self.client.invoke(request)
        except LinkError as e:
            return run.finish(_failed_state(e), error=e)
        run.enter(PipelineState.RECEIVED)

        try:
            result = self.postprocessor.validate(intent, raw)
        except SchemaViolation as e:
            return run.finish(PipelineState.FAILED_SCHEMA, error=e)
        return run.finish(PipelineState.VALIDATED, result=result)

    def run_chat(
        self,
        question: str,
        product: Optional[ProductAttributes] = None,
        knowledge_base: Sequence[KnowledgeEntry] = (),
        user_parameters: Optional[Dict[str, Any]] = None,
    ) -> PipelineOutcome:
        run = _Run("chat")
        intent = ChatIntent(question=question)
        matched = self.matcher.match(question, knowledge_base)
        context = GroundingContext(
            product_attributes=product or ProductAttributes(),
            matched_knowledge=matched,
            user_parameters=user_parameters or {},
        )
        return self._dispatch(run, intent, context)

    def run_copy(
        self,
        platform: str,
        strategy: str,
        product: Optional[ProductAttributes] = None,
        selling_points: Optional[str] = None,
        user_parameters: Optional[Dict[str, Any]] = None,
    ) -> PipelineOutcome:
        run = _Run("copy")
        intent = CopyIntent(platform=platform, strategy=strategy, selling_points=selling_points)
        context = GroundingContext(
            product_attributes=product or ProductAttributes(),
            user_parameters=user_parameters or {},
        )
        return self._dispatch(run, intent, context)

    def run_forecast(
        self,
        identifier: str,
        rows: Sequence[FactRow],
        horizon: int = Config.DEFAULT_FORECAST_HORIZON,
        factors: str = "",
        product: Optional[ProductAttributes] = None,
        today: Optional[date] = None,
        user_parameters: Optional[Dict[str, Any]] = None,
    ) -> PipelineOutcome:
        """
        Forecast sales for ``identifier`` from a snapshot of fact rows.

        Args:
            identifier: Product identifier (SKU code)
            rows: Fact rows fetched for the look-back window
            horizon: Number of future days to forecast
            factors: Free-text marketing factors
            product: Product attributes, if known
            today: End of the look-back window (defaults to the current date)
        """
        run = _Run("forecast")
        product = product or ProductAttributes(code=identifier)
        intent = ForecastIntent(identifier=identifier, model_spec=product.model, factors=factors, horizon=horizon)
        start, end = history_window(today or date.today(), self.history_days)

        try:
            series = self.aggregator.aggregate(rows, identifier, start, end, self.min_history_points)
        except InsufficientHistory as e:
            return run.finish(PipelineState.FAILED_HISTORY, error=e)

        context = GroundingContext(
            product_attributes=product,
            series=series,
            user_parameters=user_parameters or {},
        )
        return self._dispatch(run, intent, context)

    def run_image(
        self,
        product: Optional[ProductAttributes] = None,
        scene_style: str = "minimalist studio",
        lighting: str = "soft natural light",
        aspect_ratio: str = "1:1",
        details: str = "",
    ) -> PipelineOutcome:
        run = _Run("image")
        intent = ImageIntent(scene_style=scene_style, lighting=lighting, aspect_ratio=aspect_ratio, details=details)
        context = GroundingContext(product_attributes=product or ProductAttributes())
        return self._dispatch(run, intent, context)


def fetch_and_forecast(
    controller: Controller,
    query_fact_rows: Callable[[str, str], List[FactRow]],
    identifier: str,
    horizon: int = Config.DEFAULT_FORECAST_HORIZON,
    factors: str = "",
    product: Optional[ProductAttributes] = None,
    today: Optional[date] = None,
) -> PipelineOutcome:
    """Query the fact store for the look-back window, then run the forecast."""
    today = today or date.today()
    start, end = history_window(today, controller.history_days)
    rows = query_fact_rows(start, end)
    return controller.run_forecast(identifier, rows, horizon=horizon, factors=factors, product=product, today=today)
