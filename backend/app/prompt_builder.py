#!/usr/bin/env python3
"""
Prompt builder module for the e-commerce AI assistant.

This module turns an intent plus its grounding context into the request that is
sent to the inference endpoint. Composition is a pure mapping: the same intent
and context always produce the same request.
"""

import json
from typing import Any, Dict, List, Optional, Union

from ..schemas.io_models import (
    ChatIntent,
    CopyIntent,
    DailyPoint,
    ForecastIntent,
    GroundingContext,
    ImageIntent,
    ImageRequest,
    Intent,
    Message,
    ModelRequest,
    ProductAttributes,
    is_structured,
)

SYSTEM_TEXT = "You are a senior e-commerce operations strategist."
SYSTEM_JSON = (
    "You are a professional data analyst. You must return a strict JSON object only, "
    "without any Markdown formatting."
)

# Placeholders used whenever a product attribute is absent
NO_NAME = "unnamed product"
NO_CODE = "no code"
NO_PRICE = "price on request"
NO_CONFIGURATION = "standard configuration"
NO_FULFILLMENT = "standard fulfillment"
NO_STOCK = "stock unknown"
NO_BRAND = "unspecified brand"
NO_FACTORS = "no special marketing activity"
NO_MODEL_SPEC = "unspecified model"

PLATFORM_PROFILES = {
    "jd_taobao": (
        "JD / Taobao",
        "Formal and authoritative. Lead with a structured list of specifications, "
        "then add persuasive copy. Avoid emoji.",
    ),
    "detail_page": (
        "product detail page",
        "Formal and authoritative long-form copy organised in clear sections with "
        "specification highlights. Avoid emoji.",
    ),
    "xiaohongshu": (
        "Xiaohongshu",
        "Expressive and personal, like a lifestyle note. Use plenty of emoji, short "
        "paragraphs and trending hashtags.",
    ),
    "douyin": (
        "Douyin short video",
        "Punchy and energetic spoken-style hooks for a short video. Emoji and hashtags "
        "are welcome.",
    ),
}

STRATEGY_PROFILES = {
    "launch": ("new product launch", "Emphasise what is new and why it matters now."),
    "promotion": ("promotional push", "Lead with the offer and create urgency without false claims."),
    "clearance": ("stock clearance", "Stress value for money and limited remaining stock."),
    "brand_story": ("brand storytelling", "Build trust through brand heritage and craftsmanship."),
}

CHAT_TEMPLATE = """You are the lead customer-service agent of our online store.

Business context:
Product: {name}
Code: {code}
Price: {price}
Configuration: {configuration}
Fulfillment: {fulfillment}
Stock: {stock}

{knowledge}
{parameters}Customer question: "{question}"

Instructions:
1. Be polite, professional and warm.
2. Answer strictly from the business context above; never invent stock levels or prices.
3. If the question is about discounts, show that you are willing to request one for the customer.
4. Keep the reply concise and use short sentences.

Output the reply text directly."""

FORECAST_TEMPLATE = """You are a top e-commerce demand forecasting expert.
Historical daily sales of [{name}] (identifier {identifier}, model/spec {model_spec}), ordered by date:
{series}

Marketing factors: {factors}
{parameters}
Task: forecast the daily sales for the next {horizon} days after the last historical date. Consider:
1. the inertia of the historical trend;
2. weekly and other cyclical patterns;
3. how the marketing factors should correct the slope.

Return strictly this JSON object:
{{
  "summary": "one-sentence forecast summary",
  "analysis": "short explanation of the forecasting logic",
  "forecast": [{{"date": "YYYY-MM-DD", "predicted_sales": 0}}]
}}"""

COPY_TEMPLATE = """As a leading e-commerce operations expert, write sales copy for the following product on the {platform} platform.

Product information:
- Name: {name}
- Brand: {brand}
- Key specs: {configuration}

Core selling points: {selling_points}
Campaign strategy: {strategy}. {strategy_guidance}
Tone: {tone}
{parameters}
Requirements:
1. The copy must be compelling and speak directly to customer pain points.
2. Do not include any preamble.

Return strictly this JSON object:
{{
  "headline": "headline",
  "copy": "body copy",
  "visualHooks": "visual hooks for the main image",
  "keywords": ["keyword"]
}}"""

IMAGE_TEMPLATE = (
    "A high-end e-commerce product photo of {subject}, {scene} background, {lighting}, "
    "showcasing {configuration} details, aspect ratio {aspect_ratio}."
)


def _number(value: float) -> Union[int, float]:
    return int(value) if float(value).is_integer() else value


def _money(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    return f"¥{value:.2f}"


def _render_parameters(parameters: Dict[str, Any]) -> str:
    """Render user parameters as a bullet block in sorted key order."""
    if not parameters:
        return ""
    lines = ["Additional parameters:"]
    for key in sorted(parameters):
        value = parameters[key]
        if not isinstance(value, str):
            value = json.dumps(value, ensure_ascii=False, sort_keys=True)
        lines.append(f"- {key}: {value}")
    return "\n".join(lines) + "\n"


def _price_line(product: ProductAttributes) -> str:
    parts = []
    if product.selling_price is not None:
        parts.append(f"list price {_money(product.selling_price)}")
    if product.promo_price is not None:
        parts.append(f"promotional price {_money(product.promo_price)}")
    return ", ".join(parts) or NO_PRICE


def _stock_line(product: ProductAttributes) -> str:
    parts = []
    if product.warehouse_stock is not None:
        parts.append(f"{product.warehouse_stock} in warehouse")
    if product.factory_stock is not None:
        parts.append(f"{product.factory_stock} factory-direct")
    return ", ".join(parts) or NO_STOCK


def serialize_series(series: Optional[List[DailyPoint]]) -> str:
    """Serialise a daily series as an ordered JSON list of ``{date, sales}`` pairs."""
    pairs = [{"date": point.date, "sales": _number(point.value)} for point in series or []]
    return json.dumps(pairs, ensure_ascii=False)


def default_selling_points(product: ProductAttributes) -> str:
    parts = [product.name, product.model, product.configuration]
    if product.brand:
        parts.append(f"{product.brand} brand")
    return "; ".join(part for part in parts if part)


class PromptBuilder:
    """Builds inference requests from an intent and its grounding context."""

    def __init__(self, model: str):
        """
        Initialize the prompt builder.

        Args:
            model: Model name written into every chat-completions request
        """
        self.model = model

    def compose(self, intent: Intent, context: GroundingContext) -> Union[ModelRequest, ImageRequest]:
        """
        Compose the request for ``intent``.

        Args:
            intent: One of the four request intents
            context: Grounding context built for this request

        Returns:
            ModelRequest for chat/copy/forecast, ImageRequest for image
        """
        if isinstance(intent, ChatIntent):
            return self._request(intent, self._chat_prompt(intent, context))
        if isinstance(intent, ForecastIntent):
            return self._request(intent, self._forecast_prompt(intent, context))
        if isinstance(intent, CopyIntent):
            return self._request(intent, self._copy_prompt(intent, context))
        if isinstance(intent, ImageIntent):
            return ImageRequest(prompt=self._image_prompt(intent, context), aspect_ratio=intent.aspect_ratio)
        raise TypeError(f"Unsupported intent: {type(intent).__name__}")

    def _request(self, intent: Intent, prompt: str) -> ModelRequest:
        structured = is_structured(intent)
        return ModelRequest(
            model=self.model,
            messages=[
                Message(role="system", content=SYSTEM_JSON if structured else SYSTEM_TEXT),
                Message(role="user", content=prompt),
            ],
            structured_output=True if structured else None,
        )

    def _chat_prompt(self, intent: ChatIntent, context: GroundingContext) -> str:
        product = context.product_attributes
        entry = context.matched_knowledge
        if entry is not None:
            knowledge = (
                f"Knowledge base reference (category: {entry.category or 'general'}):\n"
                f"Q: {entry.question}\n"
                f"A: {entry.answer}\n"
                "Base your reply on this reference answer.\n"
            )
        else:
            knowledge = "No knowledge base entry matched this question.\n"

        return CHAT_TEMPLATE.format(
            name=product.name or NO_NAME,
            code=product.code or NO_CODE,
            price=_price_line(product),
            configuration=product.configuration or NO_CONFIGURATION,
            fulfillment=product.fulfillment_mode or NO_FULFILLMENT,
            stock=_stock_line(product),
            knowledge=knowledge,
            parameters=_render_parameters(context.user_parameters),
            question=intent.question,
        )

    def _forecast_prompt(self, intent: ForecastIntent, context: GroundingContext) -> str:
        product = context.product_attributes
        return FORECAST_TEMPLATE.format(
            name=product.name or intent.identifier,
            identifier=intent.identifier,
            model_spec=intent.model_spec or product.model or product.configuration or NO_MODEL_SPEC,
            series=serialize_series(context.series),
            factors=intent.factors.strip() or NO_FACTORS,
            parameters=_render_parameters(context.user_parameters),
            horizon=intent.horizon,
        )

    def _copy_prompt(self, intent: CopyIntent, context: GroundingContext) -> str:
        product = context.product_attributes
        platform_label, tone = PLATFORM_PROFILES[intent.platform]
        strategy_label, strategy_guidance = STRATEGY_PROFILES[intent.strategy]
        selling_points = (intent.selling_points or "").strip() or default_selling_points(product)

        return COPY_TEMPLATE.format(
            platform=platform_label,
            name=product.name or NO_NAME,
            brand=product.brand or NO_BRAND,
            configuration=product.configuration or NO_CONFIGURATION,
            selling_points=selling_points or "not specified",
            strategy=strategy_label,
            strategy_guidance=strategy_guidance,
            tone=tone,
            parameters=_render_parameters(context.user_parameters),
        )

    def _image_prompt(self, intent: ImageIntent, context: GroundingContext) -> str:
        product = context.product_attributes
        subject = " ".join(part for part in (product.brand, product.name) if part) or "the product"
        prompt = IMAGE_TEMPLATE.format(
            subject=subject,
            scene=intent.scene_style.strip() or ImageIntent.model_fields["scene_style"].default,
            lighting=intent.lighting.strip() or ImageIntent.model_fields["lighting"].default,
            configuration=product.configuration or NO_CONFIGURATION,
            aspect_ratio=intent.aspect_ratio,
        )
        details = intent.details.strip()
        if details:
            prompt = f"{prompt} {details}"
        return prompt
