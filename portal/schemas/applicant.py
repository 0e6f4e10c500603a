"""
申请人档案相关 Schema
"""
from typing import Optional, List, Dict, Any
from datetime import date
from pydantic import Field, model_validator

from portal.models.applicant import Gender, Proficiency
from .base import BaseSchema, TimestampSchema


class ApplicantUpdate(BaseSchema):
    """更新档案请求"""

    dob: Optional[date] = Field(None, description="出生日期")
    gender: Optional[Gender] = Field(None, description="性别")
    nationality: Optional[str] = Field(None, max_length=50, description="国籍")
    bio: Optional[str] = Field(None, max_length=1000, description="个人简介")
    additional_info: Optional[Dict[str, Any]] = Field(None, description="附加信息")

    @model_validator(mode="after")
    def dob_in_past(self):
        if self.dob and self.dob >= date.today():
            raise ValueError("出生日期必须早于今天")
        return self


class SkillRequest(BaseSchema):
    skill: str = Field(..., min_length=1, max_length=50)


class LanguageRequest(BaseSchema):
    language: str = Field(..., min_length=1, max_length=50)
    proficiency: Proficiency = Field(Proficiency.INTERMEDIATE, description="熟练度")


class WorkExperienceBase(BaseSchema):
    """工作经历字段"""

    company: Optional[str] = Field(None, max_length=100)
    position: Optional[str] = Field(None, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    current: Optional[bool] = None
    description: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("结束日期不能早于开始日期")
        return self


class WorkExperienceCreate(WorkExperienceBase):
    company: str = Field(..., min_length=1, max_length=100)
    position: str = Field(..., min_length=1, max_length=100)
    current: bool = False


class WorkExperienceUpdate(WorkExperienceBase):
    pass


class EducationCreate(BaseSchema):
    """新增教育经历请求"""

    institution: str = Field(..., min_length=1, max_length=150)
    degree: str = Field(..., min_length=1, max_length=100)
    field_of_study: Optional[str] = Field(None, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    gpa: Optional[float] = Field(None, ge=0, le=5)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("结束日期不能早于开始日期")
        return self


class EducationResponse(TimestampSchema):
    applicant_id: int
    institution: str
    degree: str
    field_of_study: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    gpa: Optional[float]


class ApplicantResponse(TimestampSchema):
    """申请人档案响应"""

    user_id: int
    dob: Optional[date]
    age: Optional[int] = None
    gender: Optional[Gender]
    nationality: Optional[str]
    bio: Optional[str]
    skills: List[str]
    languages: List[Dict[str, Any]]
    work_experience: List[Dict[str, Any]]
    additional_info: Dict[str, Any]
    profile_completion: int
    education: List[EducationResponse] = []


class ApplicantListResponse(TimestampSchema):
    """申请人列表项"""

    user_id: int
    nationality: Optional[str]
    gender: Optional[Gender]
    profile_completion: int
