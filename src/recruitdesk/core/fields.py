from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Literal

from recruitdesk.config import get_settings
from recruitdesk.core import options as opts
from recruitdesk.core.dates import as_day, parse_date, today
from recruitdesk.core.dependencies import (
    COMPANY_PROCESS,
    FieldDependency,
    JD_REFERENCE_COMPANY_PROCESS,
    LINEUP_COMPANY_PROCESS,
    LOCATION_EDGES,
    is_locality_city,
)
from recruitdesk.core.duplicates import PHONE_LENGTH, digits_only
from recruitdesk.types import LookupOption

Values = Mapping[str, Any]
Predicate = Callable[[Values], bool]
Validator = Callable[[Values], dict[str, str]]
Effect = Callable[[str, Any, Values], dict[str, Any]]
HiddenPayload = Literal["send", "blank", "omit"]


def get_path(record: Mapping[str, Any] | None, path: str, default: Any = None) -> Any:
    current: Any = record
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return default if current is None else current


def set_path(target: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = target
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    required: bool = False
    required_if: Predicate | None = None
    required_message: str | None = None
    visible_if: Predicate | None = None
    default: Any = ""
    payload_key: str | None = None
    source_key: str | None = None
    hidden_payload: HiddenPayload = "send"
    write_once: bool = False
    read_only: bool = False

    kind: ClassVar[str] = "text"

    @property
    def outbound_key(self) -> str:
        return self.name if self.payload_key is None else self.payload_key

    @property
    def inbound_key(self) -> str:
        return self.source_key or self.outbound_key or self.name

    def is_visible(self, values: Values) -> bool:
        return self.visible_if is None or self.visible_if(values)

    def is_required(self, values: Values) -> bool:
        if not self.is_visible(values):
            return False
        if self.required_if is not None:
            return self.required_if(values)
        return self.required

    def missing_message(self) -> str:
        return self.required_message or f"{self.label} is required"

    def coerce(self, value: Any) -> Any:
        return "" if value is None else str(value)

    def empty(self) -> Any:
        return "" if self.default is None or isinstance(self.default, str) else None

    def capabilities(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "free_text": True,
            "multiline": False,
            "searchable": False,
            "date_picker": False,
            "read_only": self.read_only,
        }


@dataclass(frozen=True)
class TextField(FieldSpec):
    digits: bool = False
    max_length: int | None = None

    kind: ClassVar[str] = "text"

    def coerce(self, value: Any) -> Any:
        if self.digits:
            return digits_only(value, self.max_length)
        text = super().coerce(value)
        return text[: self.max_length] if self.max_length else text

    def capabilities(self) -> dict[str, Any]:
        return {**super().capabilities(), "numeric": self.digits, "max_length": self.max_length}


@dataclass(frozen=True)
class SelectField(FieldSpec):
    options: tuple[LookupOption, ...] = ()
    lookup: str | None = None
    extra_options: tuple[LookupOption, ...] = ()
    searchable: bool = False

    kind: ClassVar[str] = "select"

    def capabilities(self) -> dict[str, Any]:
        source = "lookup" if self.lookup else "static"
        return {**super().capabilities(), "free_text": False, "searchable": self.searchable, "options_source": source}


@dataclass(frozen=True)
class DateField(FieldSpec):
    default: Any = None
    with_time: bool = False
    date_only_payload: bool = False

    kind: ClassVar[str] = "date"

    def coerce(self, value: Any) -> Any:
        return parse_date(value)

    def empty(self) -> Any:
        return None

    def capabilities(self) -> dict[str, Any]:
        return {**super().capabilities(), "free_text": False, "date_picker": True, "with_time": self.with_time}


@dataclass(frozen=True)
class TextareaField(FieldSpec):
    rows: int = 3

    kind: ClassVar[str] = "textarea"

    def capabilities(self) -> dict[str, Any]:
        return {**super().capabilities(), "multiline": True, "rows": self.rows}


@dataclass(frozen=True)
class CustomField(FieldSpec):
    """Free-text companion shown when ``companion_of`` holds the ``others`` sentinel."""

    companion_of: str = ""

    kind: ClassVar[str] = "custom"

    def is_visible(self, values: Values) -> bool:
        if self.visible_if is not None:
            return self.visible_if(values)
        return opts.is_others(values.get(self.companion_of))

    def is_required(self, values: Values) -> bool:
        if not self.is_visible(values):
            return False
        return self.required_if(values) if self.required_if is not None else True

    def capabilities(self) -> dict[str, Any]:
        return {**super().capabilities(), "companion_of": self.companion_of}


Field = TextField | SelectField | DateField | TextareaField | CustomField


@dataclass(frozen=True)
class SentinelPair:
    """A select whose ``others`` choice is replaced in the payload by a free-text companion.

    When the select moves to a concrete value the ``clears`` fields are emptied,
    unless one of the ``keep_when`` fields currently holds ``others``.
    """

    select: str
    companion: str
    clears: tuple[str, ...] = ()
    keep_when: tuple[str, ...] = ()
    clear_always: bool = False

    @property
    def cleared_fields(self) -> tuple[str, ...]:
        return self.clears or (self.companion,)


@dataclass(frozen=True)
class FormProfile:
    name: str
    title: str
    fields: tuple[Field, ...]
    resource: str | None = None
    dependencies: tuple[FieldDependency, ...] = ()
    sentinels: tuple[SentinelPair, ...] = ()
    gate: Predicate | None = None
    gate_fallback: tuple[str, ...] = ()
    status_field: str | None = None
    status_dates: tuple[str, ...] = ()
    autofill: tuple[tuple[str, str], ...] = ()
    validators: tuple[Validator, ...] = ()
    effects: tuple[Effect, ...] = ()
    draft_key: str | None = None
    draft_fields: tuple[str, ...] = ()
    duplicate_field: str | None = None
    prefill_name: tuple[str, str] | None = None
    submit_kind: Literal["record", "profile"] = "record"
    allow_create: bool = True
    allow_update: bool = True
    created_message: str = "{title} saved successfully!"
    updated_message: str = "{title} updated successfully!"
    failure_message: str = "Failed to submit data"

    def get_field(self, name: str) -> Field:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def has_field(self, name: str) -> bool:
        return any(spec.name == name for spec in self.fields)

    def defaults(self) -> dict[str, Any]:
        return {spec.name: spec.default for spec in self.fields}

    def sentinel_for(self, select: str) -> SentinelPair | None:
        return next((pair for pair in self.sentinels if pair.select == select), None)


def phone_validator(*names: str, required: tuple[str, ...] = ()) -> Validator:
    def validate(values: Values) -> dict[str, str]:
        errors: dict[str, str] = {}
        for name in names:
            value = str(values.get(name) or "")
            if not value:
                if name in required:
                    errors[name] = "Contact number is required"
                continue
            if len(value) != PHONE_LENGTH or not value.isdigit():
                errors[name] = "Contact number must be 10 digits"
        return errors

    return validate


def call_status_in(*statuses: str) -> Predicate:
    wanted = set(statuses)
    return lambda values: values.get("callStatus") in wanted


def requires_mandatory(values: Values) -> bool:
    return values.get("callStatus") in opts.MANDATORY_CALL_STATUSES


is_lineup = call_status_in(opts.LINEUP_STATUS)
is_walkin = call_status_in(opts.WALKIN_STATUS)


def is_pursuing(values: Values) -> bool:
    return values.get("passingYear") == "pursuing"


def shows_locality(values: Values) -> bool:
    return is_locality_city(str(values.get("city") or ""))


def status_is_joined(values: Values) -> bool:
    return str(values.get("status") or "").strip().lower() == opts.JOINED_STATUS.lower()


def is_early_logout(values: Values) -> bool:
    return values.get("leaveType") == "Early Logout"


JOB_PROFILE_EXTRA = (LookupOption(value=opts.OTHERS, label="Others"),)


def _candidate_fields(*, intake: bool) -> tuple[Field, ...]:
    # the mobile number identifies an existing candidate and is never sent on update
    contact = TextField(
        "contactNumber",
        "Contact Number",
        required=intake,
        required_message="Contact number is required",
        payload_key="mobileNo" if intake else "",
        source_key="mobileNo",
        digits=True,
        max_length=PHONE_LENGTH,
        read_only=not intake,
    )
    return (
        TextField("candidateName", "Candidate's Name", required=True, payload_key="name"),
        contact,
        TextField("whatsappNumber", "WhatsApp Number", payload_key="whatsappNo", digits=True, max_length=PHONE_LENGTH),
        SelectField("source", "Sourced", options=opts.SOURCE_OPTIONS),
        SelectField("gender", "Gender", required=True, options=opts.GENDER_OPTIONS),
        SelectField("experience", "Experience", required=True, options=opts.EXPERIENCE_OPTIONS),
        SelectField("qualification", "Qualification", required=True, lookup="qualifications", searchable=True),
        SelectField("passingYear", "Passing Year", required=intake, options=opts.PASSING_YEAR_OPTIONS),
        SelectField(
            "pursuingIn",
            "Current Sem/Year",
            required=True,
            visible_if=is_pursuing,
            hidden_payload="blank",
            options=opts.PURSUING_IN_OPTIONS,
        ),
        SelectField("state", "State", required=True, lookup="states", searchable=True),
        SelectField("city", "City", required=True, searchable=True),
        SelectField("locality", "Locality", required=True, visible_if=shows_locality, searchable=True),
        TextField("salaryExpectations", "Salary Expectation", required=intake, payload_key="salaryExpectation"),
        SelectField(
            "levelOfCommunication",
            "Communication",
            required=True,
            payload_key="communication",
            options=opts.COMMUNICATION_OPTIONS,
        ),
        SelectField(
            "noticePeriod",
            "Notice Period",
            required=intake,
            default="Immediate Joiner" if intake else "",
            options=opts.NOTICE_PERIOD_OPTIONS,
        ),
        SelectField(
            "shiftPreference",
            "Shift Preference",
            required=intake,
            default="Any Shift Works" if intake else "",
            payload_key="shift",
            options=opts.SHIFT_OPTIONS,
        ),
        SelectField("relocation", "Relocation", required=intake, options=opts.RELOCATION_OPTIONS),
        SelectField(
            "workMode",
            "Work Mode",
            required=intake,
            default="Work From Home" if intake else "",
            options=opts.WORK_MODE_OPTIONS,
        ),
        SelectField(
            "companyProfile",
            "Process/Profile",
            required=intake,
            lookup="jobProfiles",
            extra_options=JOB_PROFILE_EXTRA,
            searchable=True,
        ),
        CustomField("customCompanyProfile", "Custom Profile", companion_of="companyProfile"),
        TextField("jobInterestedIn", "Job Interested In"),
        SelectField("callStatus", "Call Status", required=True, options=opts.CALL_STATUS_OPTIONS),
        DateField("walkinDate", "Walkin Date", required=True, visible_if=is_walkin),
        SelectField(
            "lineupCompany",
            "Lineup Company",
            required=True,
            visible_if=is_lineup,
            options=opts.COMPANY_OPTIONS,
        ),
        CustomField("customLineupCompany", "Custom Company", companion_of="lineupCompany"),
        SelectField("lineupProcess", "Lineup Process", required=True, visible_if=is_lineup),
        CustomField("customLineupProcess", "Custom Process", companion_of="lineupProcess"),
        DateField("lineupDate", "Lineup Date", required=True, visible_if=is_lineup),
        DateField("interviewDate", "Interview Date", required=True, visible_if=is_lineup, with_time=True),
        SelectField(
            "callDuration",
            "Call Duration",
            default="1" if intake else "0",
            options=opts.CALL_DURATION_OPTIONS,
        ),
        TextareaField("callSummary", "Call Summary", default="-" if intake else ""),
        SelectField("jdReferenceCompany", "Company JD", options=opts.COMPANY_OPTIONS),
        SelectField("jdReferenceProcess", "JD Process"),
        TextareaField("lineupRemarks", "Lineup Remarks", visible_if=is_lineup),
        TextareaField("walkinRemarks", "Walkin Remarks", visible_if=is_walkin),
    )


_CANDIDATE_SENTINELS = (
    SentinelPair("companyProfile", "customCompanyProfile", clear_always=True),
    SentinelPair(
        "lineupCompany",
        "customLineupCompany",
        clears=("customLineupCompany", "customLineupProcess"),
        keep_when=("lineupProcess",),
    ),
    SentinelPair("lineupProcess", "customLineupProcess", keep_when=("lineupCompany",)),
)

_CANDIDATE_EDGES = (*LOCATION_EDGES, LINEUP_COMPANY_PROCESS, JD_REFERENCE_COMPANY_PROCESS)
_STATUS_DATES = ("lineupDate", "interviewDate", "walkinDate")


CALL_INFO = FormProfile(
    name="call_info",
    title="Candidate",
    resource="candidates",
    fields=_candidate_fields(intake=True),
    dependencies=_CANDIDATE_EDGES,
    sentinels=_CANDIDATE_SENTINELS,
    gate=requires_mandatory,
    gate_fallback=("candidateName", "contactNumber", "callStatus", "callDuration"),
    status_field="callStatus",
    status_dates=_STATUS_DATES,
    autofill=(("contactNumber", "whatsappNumber"),),
    validators=(phone_validator("contactNumber", "whatsappNumber", required=("contactNumber",)),),
    draft_key=get_settings().intake_draft_key,
    draft_fields=("candidateName", "contactNumber"),
    duplicate_field="contactNumber",
    allow_update=False,
    created_message="Candidate saved successfully!",
    failure_message="Failed to submit candidate data",
)

CALL_DETAILS = FormProfile(
    name="call_details",
    title="Candidate",
    resource="candidates",
    fields=(
        *_candidate_fields(intake=False),
        TextField("course", "Course"),
        TextField("completionStatus", "Completion Status"),
        TextField("currentSalary", "Current Salary"),
        TextField("currentDepartment", "Current Department"),
        TextField("currentProfile", "Current Profile"),
        SelectField("dataSaved", "Data Saved", options=opts.DATA_SAVED_OPTIONS),
    ),
    dependencies=_CANDIDATE_EDGES,
    sentinels=_CANDIDATE_SENTINELS,
    gate=requires_mandatory,
    gate_fallback=("candidateName", "callStatus"),
    status_field="callStatus",
    status_dates=_STATUS_DATES,
    validators=(phone_validator("whatsappNumber"),),
    allow_create=False,
    updated_message="Candidate updated successfully!",
    failure_message="Failed to update candidate data",
)


def _joining_status_fields(required_if: Predicate | None, visible_if: Predicate | None) -> tuple[Field, ...]:
    hidden: HiddenPayload = "omit" if visible_if else "send"
    return (
        DateField(
            "joiningDate",
            "Joining Date",
            required=True,
            required_if=required_if,
            visible_if=visible_if,
            hidden_payload=hidden,
            date_only_payload=True,
        ),
        SelectField(
            "joiningType",
            "Joining Type",
            required=True,
            required_if=required_if,
            visible_if=visible_if,
            hidden_payload=hidden,
            options=opts.JOINING_TYPE_OPTIONS,
        ),
        TextField(
            "salary",
            "Salary",
            required=True,
            required_if=required_if,
            visible_if=visible_if,
            hidden_payload=hidden,
        ),
    )


_NAME_NOT_FOUND = "No candidate found with this number. Please enter a valid contact number."

_COMPANY_SENTINELS = (
    SentinelPair("company", "customCompanyName", clears=("customCompanyName", "customCompanyProcess")),
    SentinelPair("process", "customCompanyProcess"),
)


def _record_head(name_key: str) -> tuple[Field, ...]:
    return (
        TextField(
            "candidateName",
            "Candidate Name",
            required=True,
            required_message=_NAME_NOT_FOUND,
            payload_key=name_key,
        ),
        TextField(
            "contactNumber",
            "Contact Number",
            required=True,
            required_message="Contact number is required",
            digits=True,
            max_length=PHONE_LENGTH,
        ),
    )


def _company_fields() -> tuple[Field, ...]:
    return (
        SelectField("company", "Company", required=True, options=opts.COMPANY_OPTIONS),
        CustomField("customCompanyName", "Custom Company Name", required_message="Custom company name is required", companion_of="company"),
        SelectField("process", "Process", required=True),
        CustomField("customCompanyProcess", "Custom Process", required_message="Custom process is required", companion_of="process"),
    )


LINEUP = FormProfile(
    name="lineup",
    title="Lineup",
    resource="lineups",
    fields=(
        *_record_head("name"),
        *_company_fields(),
        DateField("lineupDate", "Lineup Date", required=True, date_only_payload=True),
        DateField("interviewDate", "Interview Date", required=True, date_only_payload=True),
        SelectField("status", "Status", required=True, options=opts.LINEUP_STATUS_OPTIONS),
        TextareaField("remarks", "Remarks", payload_key="lineupRemarks"),
        *_joining_status_fields(status_is_joined, status_is_joined),
        TextareaField("joiningRemarks", "Joining Remarks"),
    ),
    dependencies=(COMPANY_PROCESS,),
    sentinels=_COMPANY_SENTINELS,
    validators=(phone_validator("contactNumber", required=("contactNumber",)),),
    prefill_name=("contactNumber", "candidateName"),
    created_message="New lineup for {candidateName} created successfully!",
    updated_message="Lineup for {candidateName} updated successfully!",
    failure_message="Failed to save lineup",
)

WALKIN = FormProfile(
    name="walkin",
    title="Walkin",
    resource="walkins",
    fields=(
        *_record_head("candidateName"),
        DateField("walkinDate", "Walkin Date", required=True, date_only_payload=True),
        TextareaField("walkinRemarks", "Walkin Remarks"),
    ),
    validators=(phone_validator("contactNumber", required=("contactNumber",)),),
    prefill_name=("contactNumber", "candidateName"),
    created_message="New walkin for {candidateName} created successfully!",
    updated_message="Walkin for {candidateName} updated successfully!",
    failure_message="Failed to save walkin",
)

JOINING = FormProfile(
    name="joining",
    title="Joining",
    resource="joinings",
    fields=(
        *_record_head("candidateName"),
        *_company_fields(),
        *_joining_status_fields(None, None),
        SelectField("status", "Status", options=opts.JOINING_STATUS_OPTIONS),
        TextareaField("remarks", "Remarks"),
    ),
    dependencies=(COMPANY_PROCESS,),
    sentinels=_COMPANY_SENTINELS,
    validators=(phone_validator("contactNumber", required=("contactNumber",)),),
    prefill_name=("contactNumber", "candidateName"),
    allow_update=False,
    created_message="New joining for {candidateName} created successfully!",
    failure_message="Failed to save joining",
)


def leave_dates_in_order(values: Values) -> dict[str, str]:
    start = as_day(values.get("startDate"))
    end = as_day(values.get("endDate"))
    if start is None or end is None:
        return {}
    if end < start:
        return {"endDate": "End date cannot be before start date"}
    return {}


def early_logout(field_name: str, value: Any, values: Values) -> dict[str, Any]:
    if field_name != "leaveType" or value != "Early Logout":
        return {}
    current = today()
    return {
        "startDate": current,
        "endDate": current,
        "leaveReason": "Early Logout",
        "description": "Request for early logout today",
    }


LEAVE = FormProfile(
    name="leave",
    title="Leave",
    resource="leaves",
    fields=(
        SelectField("leaveType", "Leave Type", required=True, options=opts.LEAVE_TYPE_OPTIONS),
        SelectField("leaveReason", "Leave Reason", required=True, options=opts.LEAVE_REASON_OPTIONS),
        DateField("startDate", "Start Date", required=True, date_only_payload=True),
        DateField("endDate", "End Date", required=True, date_only_payload=True),
        TextareaField("description", "Description", required=True),
    ),
    validators=(leave_dates_in_order,),
    effects=(early_logout,),
    allow_update=False,
    created_message="Leave applied successfully",
    failure_message="Failed to apply for leave",
)


def account_numbers_match(values: Values) -> dict[str, str]:
    account = values.get("accountNumber") or ""
    confirm = values.get("reAccountNumber") or ""
    if account and confirm and account != confirm:
        return {"reAccountNumber": "Account numbers do not match"}
    return {}


EMPLOYEE_PROFILE = FormProfile(
    name="employee_profile",
    title="Profile",
    fields=(
        TextField("name", "Full Name", payload_key="name.en", write_once=True),
        TextField("empCode", "Employee Code", payload_key="", source_key="employeeCode", read_only=True),
        TextField("designation", "Designation"),
        TextField("contact", "Contact", payload_key="mobile", digits=True, max_length=PHONE_LENGTH),
        TextField("email", "Email"),
        DateField("joiningDate", "Joining Date", payload_key="", source_key="createdAt", read_only=True),
        DateField("dob", "Date of Birth", payload_key="dateOfBirth", write_once=True, date_only_payload=True),
        TextareaField("address", "Address"),
        TextField("emergencyContactName", "Emergency Contact Name", payload_key="emergencyContact.name", write_once=True),
        TextField(
            "emergencyContactNumber",
            "Emergency Contact Number",
            payload_key="emergencyContact.number",
            digits=True,
            max_length=PHONE_LENGTH,
            write_once=True,
        ),
        TextField("relation", "Relation", payload_key="emergencyContact.relation", write_once=True),
        TextField("bankName", "Bank Name", payload_key="bankDetails.bankName", write_once=True),
        TextField("branchName", "Branch Name", payload_key="bankDetails.branch", write_once=True),
        TextField("ifsc", "IFSC", payload_key="bankDetails.ifsc", write_once=True),
        TextField("accountNumber", "Account Number", payload_key="bankDetails.accountNumber", write_once=True),
        TextField("reAccountNumber", "Confirm Account Number", payload_key="", source_key="bankDetails.accountNumber"),
        TextareaField(
            "beneficiaryAddress",
            "Beneficiary Address",
            payload_key="bankDetails.beneficiaryAddress",
            write_once=True,
        ),
    ),
    validators=(account_numbers_match,),
    submit_kind="profile",
    updated_message="Profile updated successfully",
    failure_message="Failed to update profile",
)

PROFILES: dict[str, FormProfile] = {
    profile.name: profile
    for profile in (CALL_INFO, CALL_DETAILS, LINEUP, WALKIN, JOINING, LEAVE, EMPLOYEE_PROFILE)
}


def profile_for(name: str) -> FormProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"unknown form profile '{name}'") from None


def lookup_categories(profile: FormProfile) -> list[str]:
    return [spec.lookup for spec in profile.fields if isinstance(spec, SelectField) and spec.lookup]

