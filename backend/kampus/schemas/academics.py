from pydantic import BaseModel, EmailStr, Field, field_validator


class TeacherCreate(BaseModel):
    institution_id: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    specialty: str | None = Field(default=None, max_length=200)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TeacherOut(BaseModel):
    id: str
    institution_id: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    specialty: str | None = None

    model_config = {"from_attributes": True}


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Code cannot be empty")
        return code


class SubjectOut(BaseModel):
    id: str
    name: str
    code: str

    model_config = {"from_attributes": True}


class GroupCreate(BaseModel):
    institution_id: str
    name: str = Field(min_length=1, max_length=100)
    grade: str | None = Field(default=None, max_length=50)


class GroupOut(BaseModel):
    id: str
    institution_id: str
    name: str
    grade: str | None = None

    model_config = {"from_attributes": True}
