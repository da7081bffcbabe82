# pigg/domain/gpio/pin_function.py
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from pigg.domain.gpio.enums import InputPull


class NoFunction(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["NONE"] = "NONE"

    def __str__(self) -> str:
        return "None"


class Input(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["INPUT"] = "INPUT"
    pull: Optional[InputPull] = None

    def __str__(self) -> str:
        if self.pull is None:
            return "Input"
        return f"Input({self.pull.value})"


class Output(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["OUTPUT"] = "OUTPUT"
    level: Optional[bool] = None

    def __str__(self) -> str:
        if self.level is None:
            return "Output"
        return f"Output({self.level})"


PinFunction = Annotated[Union[NoFunction, Input, Output], Field(discriminator="kind")]

NONE = NoFunction()
