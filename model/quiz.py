# model/quiz.py
from pydantic import BaseModel, Field, field_validator
from util.enums import Difficulty


class QuizQuestion(BaseModel):
    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correctIndex: int = Field(ge=0)
    explanation: str = ""
    topic: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM

    @field_validator("difficulty", mode="before")
    @classmethod
    def _known_difficulty(cls, v):
        # "mixed" only makes sense for a whole quiz, never one question
        if isinstance(v, str) and v.lower() in {"easy", "medium", "hard"}:
            return v.lower()
        return Difficulty.MEDIUM

    def is_consistent(self) -> bool:
        return self.correctIndex < len(self.options)


class QuizConfig(BaseModel):
    numQuestions: int = Field(default=5, ge=1, le=25)
    difficulty: Difficulty = Difficulty.MIXED
    topics: list[str] = Field(default_factory=list)
    seed: int = 0


class QuizScore(BaseModel):
    correct: int
    total: int
    percentage: int
