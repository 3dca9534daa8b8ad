# jobtracker/blueprints/main/forms.py
from __future__ import annotations

from datetime import date

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import StringField, TextAreaField, SelectField, DateField, SubmitField
from wtforms.validators import DataRequired, Length, Optional as Opt, URL

from ...models.job import STATUSES, STATUS_LABELS, PLATFORMS, PLATFORM_LABELS

DOCUMENT_ACCEPT = (
    ".pdf,.doc,.docx,application/pdf,application/msword,"
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


class JobForm(FlaskForm):
    company = StringField("Company *", validators=[DataRequired(), Length(max=255)])
    title = StringField("Job Title *", validators=[DataRequired(), Length(max=255)])
    link = StringField("Job Link", validators=[Opt(), URL(require_tld=False)],
                       render_kw={"placeholder": "https://..."})
    platform = SelectField("Platform", choices=[(p, PLATFORM_LABELS[p]) for p in PLATFORMS], default="other")
    status = SelectField("Status", choices=[(s, STATUS_LABELS[s]) for s in STATUSES], default="not_submitted")
    deadline = DateField("Deadline", validators=[Opt()])
    date_submitted = DateField("Date Submitted", validators=[Opt()])
    description = TextAreaField("Description", validators=[Opt()])
    notes = TextAreaField("Notes", validators=[Opt()])
    tags = StringField("Tags", validators=[Opt()], render_kw={"placeholder": "remote, python, ..."})
    submit = SubmitField("Save")

    def job_data(self) -> dict:
        return {
            "company": self.company.data,
            "title": self.title.data,
            "link": self.link.data,
            "platform": self.platform.data,
            "status": self.status.data,
            "deadline": self.deadline.data,
            "date_submitted": self.date_submitted.data,
            "description": self.description.data,
            "notes": self.notes.data,
            "tags": self.tags.data,
        }


class SubmitApplicationForm(FlaskForm):
    submitted_date = DateField("Submission date", validators=[DataRequired()], default=date.today)
    cv_file = FileField("CV used (required)", validators=[FileRequired()],
                        render_kw={"accept": DOCUMENT_ACCEPT})
    cover_letter_file = FileField("Cover letter used (optional)", render_kw={"accept": DOCUMENT_ACCEPT})
    submit = SubmitField("Submit application")
