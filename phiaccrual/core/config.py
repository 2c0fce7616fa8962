from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic_core.core_schema import ValidatorFunctionWrapHandler

from phiaccrual.core.exception import InvalidConfiguration


class DetectorConfig(BaseModel):
    """
    Immutable configuration of a single phi failure detector.

    Validated once, whether built by the constructor or model_validate.
    Any out-of-range value raises InvalidConfiguration with the underlying
    pydantic error as its cause.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_stddev: Annotated[
        float,
        Field(
            description=(
                "Floor applied to the standard deviation of the observed intervals.\n"
                "Keeps phi finite and sane when intervals are few or perfectly regular.\n"
                "Expressed in the same time unit as the heartbeat timestamps."
            ),
            gt=0.0,
            allow_inf_nan=False,
            default=1.0,
        )
    ]

    history_size: Annotated[
        int,
        Field(
            description="Maximum number of inter-heartbeat intervals kept in the window.",
            gt=0,
            default=10,
        )
    ]

    @model_validator(mode="wrap")
    @classmethod
    def reject_invalid(cls, data: Any, handler: ValidatorFunctionWrapHandler) -> "DetectorConfig":
        try:
            return handler(data)
        except ValidationError as ex:
            raise InvalidConfiguration(str(ex)) from ex
