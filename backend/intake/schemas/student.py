from pydantic import BaseModel, ConfigDict

CHECKS = ("head_centered", "eyes_open", "no_glasses", "white_background", "good_lighting")

class AnalysisVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    head_centered: bool = False
    eyes_open: bool = False
    no_glasses: bool = False
    white_background: bool = False
    good_lighting: bool = False

    @classmethod
    def all_passing(cls) -> "AnalysisVerdict":
        return cls(**{name: True for name in CHECKS})

    @property
    def passed(self) -> bool:
        return all(getattr(self, name) for name in CHECKS)

    def failed_checks(self) -> list[str]:
        return [name for name in CHECKS if not getattr(self, name)]

class CandidateRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    exam_code: str
    department: str
    study_type: str
    symbol: str | None = None
    birth_year: str | None = None
    photo_url: str | None = None
    # server-known verdict: all-true when a photo is already stored
    analysis: AnalysisVerdict | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.birth_year) and bool(self.photo_url)

class SelectedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    content_type: str = "application/octet-stream"
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)
