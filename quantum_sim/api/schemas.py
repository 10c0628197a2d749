# quantum_sim/api/schemas.py

"""
Pydantic schemas for request/response validation.

The browser front-end speaks camelCase JSON, so every model that
crosses the /api boundary uses a camelCase alias generator while
Python code keeps snake_case attribute names.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CompanySize = Literal['startup', 'small', 'medium', 'large', 'enterprise']


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ===================================================================
# DOMAIN
# ===================================================================
class TimelinePoint(CamelModel):
    """One month of a scenario timeline."""

    month: str
    date: date
    revenue: float
    probability: float
    market_share: float
    customer_count: int
    operating_costs: float
    key_events: List[str] = Field(default_factory=list)


class FinancialProjection(CamelModel):
    metric: str
    current_value: float
    projected_value: float
    variance: float
    confidence: int
    timeframe: str


class RiskFactor(CamelModel):
    name: str
    impact: int
    probability: int
    description: str


class RiskAssessment(CamelModel):
    overall: int
    factors: List[RiskFactor]
    mitigation: List[str]


class SimilarCase(CamelModel):
    id: str
    company: str
    industry: str
    scenario: str
    outcome: str
    similarity: float
    year: int


class BusinessScenario(CamelModel):
    """A generated scenario with everything the simulator displays."""

    id: str
    title: str
    description: str
    confidence: int = Field(..., description="Confidence in percent (0-100)")
    created_at: datetime
    query: str
    timeline: List[TimelinePoint]
    key_insights: List[str]
    financial_projections: List[FinancialProjection]
    risk_assessment: RiskAssessment
    similar_cases: List[SimilarCase]
    key_assumptions: Optional[str] = None
    expected_outcome: Optional[str] = None


# ===================================================================
# REQUESTS
# ===================================================================
class BusinessContext(CamelModel):
    """Describes the company the decision is being made for."""

    industry: Optional[str] = None
    company_size: Optional[CompanySize] = None
    timeframe: Optional[str] = None
    region: Optional[str] = None
    business_model: Optional[str] = None
    current_revenue: Optional[float] = None
    employee_count: Optional[int] = None
    market_position: Optional[str] = None

    def with_defaults(self) -> 'BusinessContext':
        """Fill in the fields a prompt cannot do without."""
        return self.model_copy(update={
            'industry': self.industry or 'technology',
            'company_size': self.company_size or 'startup',
            'timeframe': self.timeframe or '2020-2024',
            'region': self.region or 'North America',
            'business_model': self.business_model or 'B2B SaaS',
        })


class ScenarioOptions(CamelModel):
    scenario_count: int = Field(3, ge=1, le=5)
    time_horizon: int = Field(12, ge=1, le=60)
    include_risk_analysis: bool = True
    include_similar_cases: bool = True
    detail_level: Literal['basic', 'detailed', 'comprehensive'] = 'detailed'


class ScenarioRequest(CamelModel):
    """What the client sends to get scenarios."""

    query: Optional[str] = None
    context: Optional[BusinessContext] = None
    options: Optional[ScenarioOptions] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [{
                "query": "What if we launched our e-commerce platform during Q4 instead of Q1?",
                "context": {"industry": "ecommerce", "companySize": "startup"},
                "options": {"scenarioCount": 3, "includeSimilarCases": True}
            }]
        }
    )


class ScenarioVariation(CamelModel):
    name: str
    description: str = ''
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ScenarioReference(CamelModel):
    """The scenario a set of variations is derived from."""

    id: str = 'base_scenario'
    title: str = ''
    description: str = ''


class ForecastRequest(CamelModel):
    base_scenario: Optional[ScenarioReference] = None
    variations: Optional[List[ScenarioVariation]] = None
    time_horizon: int = Field(
        12, ge=1, le=60, description="Months to forecast")


class VectorSearchRequest(CamelModel):
    situation: Optional[str] = None
    industry: Optional[str] = None
    context: str = ''
    limit: int = Field(5, ge=1, le=20)


# ===================================================================
# RESPONSES
# ===================================================================
class ForecastSummary(CamelModel):
    total_revenue: float
    average_confidence: float
    peak_revenue: float
    risk_level: int


class VariationForecast(CamelModel):
    variation_id: str
    variation_name: str
    description: str
    parameters: Dict[str, Any]
    timeline: List[TimelinePoint]
    summary: ForecastSummary


class ForecastMetadata(CamelModel):
    time_horizon: int
    variation_count: int
    generated_at: datetime
    confidence: float


class ForecastData(CamelModel):
    base_scenario: ScenarioReference
    forecasts: List[VariationForecast]
    metadata: ForecastMetadata


class APIResponse(CamelModel):
    """Envelope shared by every /api route."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    timestamp: datetime
    processing_time: int = Field(..., description="Milliseconds")


class ScenariosResponse(APIResponse):
    data: Optional[List[BusinessScenario]] = None


class ForecastResponse(APIResponse):
    data: Optional[ForecastData] = None


class VectorSearchResponse(APIResponse):
    data: Optional[List[SimilarCase]] = None


class HealthResponse(BaseModel):
    """System health check response."""

    status: str
    version: str
    bigquery_configured: bool
    configuration_errors: List[str]
    connection_ok: Optional[bool] = None
    dataset: Optional[Dict] = None
    last_updated: str
