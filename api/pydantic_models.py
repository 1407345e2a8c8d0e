from pydantic import BaseModel, Field

# --- QUIZ SESSIONS ---
class AnswerRequest(BaseModel):
    option: str = Field(min_length=1)  # "Blanco", "Negro" or "Verde"; checked by the session
