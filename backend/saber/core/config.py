from pathlib import Path

from pydantic_settings import BaseSettings

CORE_DIRECTIVE = """You are SABER - Sistema de Análise e Benefício Educacional em Relatório, an educational assistant.
You help students, teachers and school managers. Adapt tone and depth to who you are talking to:
- Students: explain step by step, check understanding, encourage curiosity.
- Teachers: be precise, suggest activities, assessments and teaching strategies.
- Managers: be concise, focus on indicators, planning and reports.
Never invent facts. When you are unsure, say so and suggest where to check."""

PERSONALITY_PROMPTS = {
    "balanced": "You are balanced, clear and educational. Answer directly but kindly.",
    "friendly": "You are very friendly, warm and encouraging. Use welcoming, empathetic language.",
    "professional": "You are formal, precise and objective. Keep a professional, technical tone.",
    "creative": "You are creative, innovative and inspiring. Use analogies and creative examples.",
    "technical": "You are highly technical and detailed. Give deep, precise explanations.",
}

TITLE_PROMPT = (
    "Read the following message from a student and write a short, descriptive title "
    "(at most {max_length} characters) that captures its main topic:\n\n"
    'Message: "{message}"\n\n'
    "Answer ONLY with the title, without quotes or explanations:"
)


class Settings(BaseSettings):
    app_name: str = "SABER"
    debug: bool = False

    # Database
    database_url: str = f"sqlite:///{Path(__file__).resolve().parent.parent.parent / 'saber.db'}"

    # LLM
    llm_provider: str = "gemini"  # gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 120

    # Prompts
    core_directive: str = CORE_DIRECTIVE
    personality_prompts: dict[str, str] = PERSONALITY_PROMPTS
    title_prompt: str = TITLE_PROMPT

    # Titles
    default_title: str = "New Conversation"
    title_max_length: int = 40
    title_max_words: int = 5
    title_min_length: int = 3
    title_max_tokens: int = 15
    title_temperature_ceiling: float = 0.7
    title_stop_sequences: list[str] = ["\n", '"', "'"]

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "SABER_",
    }


settings = Settings()
