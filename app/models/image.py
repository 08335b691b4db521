from dataclasses import dataclass, field


@dataclass(frozen=True)
class ImageAsset:
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class EncodedPayload:
    mime_type: str
    base64_data: str = field(repr=False)

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64_data}"
