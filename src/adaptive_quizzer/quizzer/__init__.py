from .models import (
    OPTION_KEYS,
    ConfigurationError,
    Difficulty,
    Question,
    QuizzerError,
    Response,
    SessionStateError,
)
from .parser import BankParser, ParseError, parse_bank, parse_bank_file
from .pools import DifficultyPools
from .knowledge import KnowledgeTracker, LikelihoodModel
from .selector import AdaptiveSelector, FixedSelector
from .recorder import SessionRecorder, SessionReport, csv_filename
from .engine import (
    AnswerResult,
    QuestionPrompt,
    QuizSession,
    SessionComplete,
    SessionConfig,
    get_report,
    next_question,
    start_session,
    submit_answer,
)
from .config import ConfigError, QuizzerConfig, load_config
from .session import QuizRunResult, render_report, run_quiz_session
from .view.quiz import QuizApp

__all__ = [
    "OPTION_KEYS",
    "ConfigurationError",
    "Difficulty",
    "Question",
    "QuizzerError",
    "Response",
    "SessionStateError",
    "BankParser",
    "ParseError",
    "parse_bank",
    "parse_bank_file",
    "DifficultyPools",
    "KnowledgeTracker",
    "LikelihoodModel",
    "AdaptiveSelector",
    "FixedSelector",
    "SessionRecorder",
    "SessionReport",
    "csv_filename",
    "AnswerResult",
    "QuestionPrompt",
    "QuizSession",
    "SessionComplete",
    "SessionConfig",
    "get_report",
    "next_question",
    "start_session",
    "submit_answer",
    "ConfigError",
    "QuizzerConfig",
    "load_config",
    "QuizRunResult",
    "render_report",
    "run_quiz_session",
    "QuizApp",
]
