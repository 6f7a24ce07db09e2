from pydantic import Field, model_validator
from typing import Optional, Literal, List, Tuple, Any

from .base import CamelModel
from .sensor import ActionType

RuleType = Literal["1-sensor", "2-sensor"]
RuleOperator = Literal["AND", "OR"]
ActionShape = Literal["circle", "line"]

def check_rule_shape(rule_type: str, sensors: List[str], operator: Optional[str]) -> None:
    """Raise ValueError unless the sensor list and operator match the rule type"""
    if rule_type == "1-sensor":
        if len(sensors) != 1:
            raise ValueError("1-sensor rules must reference exactly one sensor")
    elif rule_type == "2-sensor":
        if len(sensors) != 2 or sensors[0] == sensors[1]:
            raise ValueError("2-sensor rules must reference exactly two distinct sensors")
        if operator not in ("AND", "OR"):
            raise ValueError("2-sensor rules require an AND/OR operator")
    else:
        raise ValueError(f"Unknown rule type: {rule_type}")

class SensorRuleMetadata(CamelModel):
    condition: Optional[Literal["active", "inactive"]] = None
    points: Optional[List[Tuple[float, float]]] = None

class SensorRuleCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    type: RuleType
    sensors: List[str]
    operator: Optional[RuleOperator] = None
    action_type: ActionType
    action_shape: ActionShape
    action_coordinates: Optional[List[Any]] = None
    action_radius: Optional[float] = Field(None, gt=0)
    enabled: bool = True
    metadata: Optional[SensorRuleMetadata] = None

    @model_validator(mode="after")
    def _check_shape(self):
        check_rule_shape(self.type, self.sensors, self.operator)
        return self

class SensorRuleUpdate(CamelModel):
    name: Optional[str] = None
    type: Optional[RuleType] = None
    sensors: Optional[List[str]] = None
    operator: Optional[RuleOperator] = None
    action_type: Optional[ActionType] = None
    action_shape: Optional[ActionShape] = None
    action_coordinates: Optional[List[Any]] = None
    action_radius: Optional[float] = Field(None, gt=0)
    enabled: Optional[bool] = None
    metadata: Optional[SensorRuleMetadata] = None
