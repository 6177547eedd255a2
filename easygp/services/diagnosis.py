"""
Diagnosis Service - Request decoding, evaluation and response encoding
"""
import uuid
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from easygp.core.observation.base import ContinuousSymptom, Feature, PatientObservation, SymptomFact
from easygp.core.inference.engine import DiagnosisEngine, DiagnosisResult
from easygp.models.diagnosis import ConditionProbability, DiagnoseRequest, DiagnoseResponse

logger = logging.getLogger(__name__)


class DiagnosisService:
    """
    Service class to handle the diagnosis business logic.
    Decouples the logic from FastAPI endpoints.
    """

    def __init__(self, engine: DiagnosisEngine, top_k: int = 3):
        self.engine = engine
        self.top_k = top_k

    @staticmethod
    def to_observation(request: DiagnoseRequest) -> PatientObservation:
        """
        Decode an API request into a PatientObservation.

        Raises:
            ValueError: unknown feature name.
        """
        return PatientObservation(
            age=request.age,
            contact_history=request.contact_history,
            discrete_symptoms=tuple(
                SymptomFact(Feature.from_string(s.feature), s.present)
                for s in request.discrete_symptoms
            ),
            continuous_symptoms=tuple(
                ContinuousSymptom(Feature.from_string(s.feature), s.value)
                for s in request.continuous_symptoms
            ),
        )

    def diagnose(self, request: DiagnoseRequest) -> DiagnoseResponse:
        """
        Evaluate a request.

        Raises:
            ValueError: unknown feature name.
            InvalidObservation: the observation was rejected by the engine.
        """
        diagnosis_id = f"DX-{uuid.uuid4().hex[:8].upper()}"
        observation = self.to_observation(request)

        result = self.engine.evaluate(observation)
        logger.info(f"[{diagnosis_id}] {result.top_condition.value} -> {result.recommendation.value}")

        return self.to_response(result, diagnosis_id)

    def to_response(self, result: DiagnosisResult, diagnosis_id: Optional[str] = None) -> DiagnoseResponse:
        payload: Dict[str, Any] = result.to_dict()
        return DiagnoseResponse(
            diagnosis_id=diagnosis_id or f"DX-{uuid.uuid4().hex[:8].upper()}",
            timestamp=datetime.now().isoformat(),
            top_conditions=[
                ConditionProbability(condition=c.value, probability=round(p, 4))
                for c, p in result.top_conditions(self.top_k)
            ],
            calibration_version=self.engine.model.version,
            **payload,
        )
