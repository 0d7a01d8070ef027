from flask_wtf import FlaskForm
from werkzeug.datastructures import MultiDict
from wtforms import StringField, IntegerField, SelectField
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional, ValidationError
from models import Role, StudentMode, ProjectVisibility, FeedbackType, ProgramType
from exceptions import ValidationError as RequestValidationError


def payload_formdata(payload):
    """JSON body -> MultiDict WTForms can bind; nulls and nested values are dropped."""
    formdata = MultiDict()
    for key, value in (payload or {}).items():
        if value is None or isinstance(value, (list, dict)):
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        formdata.add(key, str(value))
    return formdata


def bind(form_cls, payload):
    """Build and validate ``form_cls`` from a JSON payload, raising on the first error."""
    form = form_cls(formdata=payload_formdata(payload))
    if not form.validate():
        field_name, messages = next(iter(form.errors.items()))
        label = getattr(form, field_name).label.text
        raise RequestValidationError(f'{label}: {messages[0]}')
    return form


class ApiForm(FlaskForm):
    class Meta:
        csrf = False


# Login Forms
class OtpRequestForm(ApiForm):
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])


class OtpVerifyForm(OtpRequestForm):
    otp = StringField('OTP', validators=[DataRequired(), Length(min=6, max=6)])


# Signup Forms
class SignupRequestForm(OtpRequestForm):
    pass


class SignupForm(OtpVerifyForm):
    full_name = StringField('Full Name', validators=[DataRequired(), Length(max=120)])
    role = SelectField('Role', choices=[
        (Role.STUDENT.value, 'Student'),
        (Role.INSTRUCTOR.value, 'Instructor'),
        (Role.ADVISOR.value, 'Advisor'),
    ], validators=[DataRequired()])
    department = StringField('Department', validators=[DataRequired(), Length(max=50)])
    batch = StringField('Batch', validators=[Optional(), Length(max=10)])
    entry_no = StringField('Entry Number', validators=[Length(max=20)])

    def validate_entry_no(self, entry_no):
        if self.role.data == Role.STUDENT.value and not entry_no.data:
            raise ValidationError('Entry number is required for students.')


# Course Offering Form
class FloatCourseForm(ApiForm):
    course_code = StringField('Course Code', validators=[DataRequired(), Length(max=20)])
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    department = StringField('Department', validators=[Optional(), Length(max=50)])
    acad_session = StringField('Session', validators=[DataRequired(), Length(max=20)])
    credits = IntegerField('Credits', validators=[DataRequired(), NumberRange(min=1, max=24)])
    slot = StringField('Slot', validators=[Optional(), Length(max=10)])
    capacity = IntegerField('Capacity', validators=[NumberRange(min=0)])


# Project Form
class ProjectForm(ApiForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    summary = StringField('Summary', validators=[DataRequired(), Length(max=500)])
    description = StringField('Description', validators=[DataRequired()])
    domain = StringField('Domain', validators=[DataRequired(), Length(max=100)])
    visibility = SelectField('Visibility', choices=[(v.value, v.value) for v in ProjectVisibility],
                             default=ProjectVisibility.PRIVATE.value)
    student_mode = SelectField('Student Mode', choices=[(m.value, m.value) for m in StudentMode],
                               default=StudentMode.NO_STUDENTS.value)
    student_slots = IntegerField('Student Slots', validators=[Optional(), NumberRange(min=0)])
    required_skills = StringField('Required Skills', validators=[Optional()])
    preferred_background = StringField('Preferred Background', validators=[Optional()])
    expected_outcomes = StringField('Expected Outcomes', validators=[Optional()])
    duration = StringField('Duration', validators=[Optional(), Length(max=50)])
    weekly_commitment = StringField('Weekly Commitment', validators=[Optional(), Length(max=50)])

    def validate_student_slots(self, student_slots):
        if self.student_mode.data == StudentMode.LIMITED_SLOTS.value and not student_slots.data:
            raise ValidationError('Valid student_slots required for LIMITED_SLOTS mode.')


# Course Feedback Form
class FeedbackForm(ApiForm):
    course_id = IntegerField('Course', validators=[DataRequired()])
    instructor_id = IntegerField('Instructor', validators=[DataRequired()])
    feedback_type = SelectField('Feedback Type', choices=[(t.value, t.value) for t in FeedbackType],
                                validators=[DataRequired()])
    q1 = StringField('Q1', validators=[DataRequired(), Length(max=50)])
    q2 = StringField('Q2', validators=[DataRequired(), Length(max=50)])
    q3 = StringField('Q3', validators=[DataRequired(), Length(max=50)])
    q4 = StringField('Q4', validators=[DataRequired(), Length(max=50)])
    q5 = StringField('Q5', validators=[DataRequired(), Length(max=50)])
    q6 = StringField('Q6', validators=[DataRequired(), Length(max=50)])
    q7 = StringField('Q7', validators=[DataRequired(), Length(max=50)])
    q8 = StringField('Q8', validators=[DataRequired(), Length(max=50)])
    q9 = StringField('Q9', validators=[DataRequired(), Length(max=50)])
    q10 = StringField('Q10', validators=[DataRequired(), Length(max=50)])
    q11 = StringField('Comments', validators=[Optional(), Length(max=2000)])


# Degree Program Form
class ProgramForm(ApiForm):
    program_type = SelectField('Program Type', choices=[(p.value, p.value) for p in ProgramType],
                               validators=[DataRequired()])
    target_branch = StringField('Target Branch', validators=[Length(max=100)])
    semester = StringField('Semester', validators=[Length(max=10)])

    def validate_target_branch(self, target_branch):
        if self.program_type.data == ProgramType.MINOR.value and not target_branch.data:
            raise ValidationError('Target branch is required for a minor.')

    def validate_semester(self, semester):
        if self.program_type.data == ProgramType.ADDITIONAL_INTERNSHIP.value and not semester.data:
            raise ValidationError('Semester is required for an additional internship.')
