from dataclasses import dataclass, field


@dataclass(frozen=True)
class AnalysisRequest:
    generation: int
    model: str
    messages: list[dict] = field(repr=False)
    options: dict = field(default_factory=dict)

    def to_api_kwargs(self) -> dict:
        return {"model": self.model, "messages": self.messages, **self.options}


@dataclass(frozen=True)
class AnalysisResult:
    generation: int
    markdown: str
    model: str = ""
