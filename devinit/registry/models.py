from dataclasses import dataclass


@dataclass
class Project:
    id: int
    name: str
    manifest: str


@dataclass
class Alias:
    project_id: int
    alias: str
    is_primary: bool = False

    def __post_init__(self):
        self.is_primary = bool(self.is_primary)


@dataclass
class Settings:
    use_session_wrapper: bool = False

    def __post_init__(self):
        self.use_session_wrapper = bool(self.use_session_wrapper)
