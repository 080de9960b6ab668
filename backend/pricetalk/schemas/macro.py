"""
Macro bias schemas.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class MacroBiasResponse(BaseModel):
    id: str
    currency: str
    heat_score: float
    cot_score: float
    retail_sentiment_score: float
    price_momentum_score: float
    macro_surprise_score: float
    factors: dict[str, Any] = {}
    timestamp: Optional[datetime] = None


class PairAnalysisDetail(BaseModel):
    base: MacroBiasResponse
    quote: MacroBiasResponse


class PairAnalysis(BaseModel):
    pair: str
    base_currency: str
    quote_currency: str
    base_bias: float
    quote_bias: float
    pair_bias: float
    signal: str
    confidence: float
    analysis: PairAnalysisDetail
