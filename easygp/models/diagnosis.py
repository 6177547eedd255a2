"""
Diagnosis API Models
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class SymptomFactInput(BaseModel):
    """Discrete symptom: present or absent."""
    feature: str = Field(..., description="Feature name, e.g. fever, swollen_glands, SoreThroat")
    present: bool


class ContinuousSymptomInput(BaseModel):
    """Continuous symptom measurement."""
    feature: str = Field(..., description="Continuous-capable feature: fever, lymph_nodes, tenderness")
    value: float


class DiagnoseRequest(BaseModel):
    """Request for differential diagnosis."""
    age: int = Field(..., description="Patient age in years (0-120)")
    contact_history: bool = Field(default=False, description="Known contact with an infected person")
    discrete_symptoms: List[SymptomFactInput] = []
    continuous_symptoms: List[ContinuousSymptomInput] = []


class ConditionProbability(BaseModel):
    """One entry of the differential list."""
    condition: str
    probability: float


class DiagnoseResponse(BaseModel):
    """Response from differential diagnosis."""
    diagnosis_id: str
    timestamp: str
    probabilities: Dict[str, float]
    log_odds: Dict[str, float]
    recommendation: str
    message: str
    explanation: str
    top_conditions: List[ConditionProbability]
    calibration_version: str


class ErrorResponse(BaseModel):
    """Rejected observation."""
    error: str
    reason: Optional[str] = None
    feature: Optional[str] = None
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    timestamp: str
    components: Dict[str, str]
