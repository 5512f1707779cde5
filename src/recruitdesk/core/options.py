from __future__ import annotations

from recruitdesk.types import LookupOption

OTHERS = "others"

LINEUP_STATUS = "Lineup"
WALKIN_STATUS = "Walkin at Infidea"
MANDATORY_CALL_STATUSES = frozenset({LINEUP_STATUS, WALKIN_STATUS})


def is_others(value: object) -> bool:
    return isinstance(value, str) and value.strip().lower() == OTHERS


def options_of(*values: str) -> tuple[LookupOption, ...]:
    return tuple(LookupOption(value=value, label=value) for value in values)


def labelled(*pairs: tuple[str, str]) -> tuple[LookupOption, ...]:
    return tuple(LookupOption(value=value, label=label) for value, label in pairs)


COMPANY_OPTIONS = labelled(
    ("Teleperformance", "Teleperformance"),
    ("Taskus", "TaskUs"),
    ("ICICI Lombard", "ICICI Lombard"),
    ("Qconnect", "Qconnect"),
    ("Altruist", "Altruist"),
    ("Annova", "Annova"),
    ("Others", "Others"),
)

COMPANY_PROCESS_MAP: dict[str, tuple[str, ...]] = {
    "Altruist": ("Airtel Black", "Airtel Broadband", "IPru", "Induslnd Bank"),
    "ICICI Lombard": ("Customer Support", "Sales", "E-Channel Sales"),
    "Taskus": ("Delivroo", "Doordash", "Frontier", "Tinder", "Vivint"),
    "Qconnect": (
        "Myntra Chat",
        "Myntra Email",
        "Myntra Voice",
        "Noon.Com",
        "Swiggy Chat",
        "Swiggy Email",
        "Swiggy Voice",
    ),
    "Teleperformance": (
        "Asus",
        "Byram",
        "Dexcom",
        "Flipkart Chat",
        "Flipkart L2",
        "Flipkart Seller Support",
        "Flipkart Voice",
        "Instacart Chat",
        "Instacart Email",
        "Instacart Voice",
        "Mastercard B2B",
        "Mastercard B2C",
        "P&G",
        "Presto",
        "Temu",
        "Western Union Chat",
        "Western Union Email",
        "Western Union Voice",
        "Xaomi",
    ),
    "Annova": ("Others",),
    "Others": ("Others",),
}


def processes_for_company(company: str) -> tuple[LookupOption, ...]:
    if not company:
        return ()
    processes = COMPANY_PROCESS_MAP.get(company)
    if processes is None:
        processes = next(
            (items for name, items in COMPANY_PROCESS_MAP.items() if name.lower() == company.lower()),
            (),
        )
    return options_of(*processes)


CALL_STATUS_OPTIONS = options_of(
    "Call Back Requested",
    "Pipeline",
    "Shared with Inhouse HR",
    "Inhouse HR In Touch",
    LINEUP_STATUS,
    "Selected",
    "Not Aligned Anywhere",
    "Not Looking for Job",
    "Not Picking Call",
    "Not Reachable",
    WALKIN_STATUS,
)

CALL_DURATION_OPTIONS = tuple(
    LookupOption(value=str(minutes), label=f"{minutes} {'Minute' if minutes == 1 else 'Minutes'}")
    for minutes in range(1, 31)
)

EXPERIENCE_OPTIONS = options_of("Fresher", "Experienced")
GENDER_OPTIONS = options_of("Male", "Female", "Others")
COMMUNICATION_OPTIONS = options_of("Hindi", "Below Average", "Average", "Above Average", "Good", "Excellent")
SHIFT_OPTIONS = options_of("Day Shift", "Night Shift", "Any Shift Works")
WORK_MODE_OPTIONS = options_of("Office", "Work From Home", "Hybrid", "Any Mode")
NOTICE_PERIOD_OPTIONS = options_of(
    "Immediate Joiner",
    "7 Days",
    "15 Days",
    "30 Days",
    "45 Days",
    "60 Days",
    "90 Days",
    "More than 90 Days",
)
RELOCATION_OPTIONS = options_of("Yes", "No")
DATA_SAVED_OPTIONS = options_of("Yes", "No")
SOURCE_OPTIONS = labelled(
    ("Candidate Reference", "Candidate Reference"),
    ("Incoming Call", "Incoming Call"),
    ("Indeed", "Indeed"),
    ("Instagram", "Instagram"),
    ("Internal Database", "Internal Database"),
    ("Internshala", "Internshala"),
    ("Linkedin", "LinkedIn"),
    ("Missed Call", "Missed Call"),
    ("Naukri", "Naukri.com"),
    ("Other", "Other"),
    ("Personal Reference", "Personal Reference"),
)
PURSUING_IN_OPTIONS = options_of(
    *(f"{n}{suffix} Semester" for n, suffix in zip(range(1, 9), ("st", "nd", "rd", "th", "th", "th", "th", "th"))),
    *(f"{n}{suffix} Year" for n, suffix in zip(range(1, 6), ("st", "nd", "rd", "th", "th"))),
)
PASSING_YEAR_OPTIONS = options_of("pursuing", *(str(year) for year in range(2030, 1999, -1)))

JOINED_STATUS = "Joined"

LINEUP_STATUS_OPTIONS = options_of(
    "Reject - HR Round",
    "Reject - Ops Round",
    "Reject - Client Round",
    "Reject - Assessment Round",
    "Duplicate",
    "Joined Somewhere Else",
    "Joined & Left",
    "Joined & Duplicated",
    "Negative Rehire",
    "Not Interested",
    "Offer Drop",
    "Feedback Pending From Client",
    "Interview Pending - Client Round",
    "Interview Pending - HR Round",
    "Interview Pending - Ops Round",
    JOINED_STATUS,
    "Selected",
    "Scheduled",
    "Completed",
    "On Hold",
    "Cancelled",
    "Others",
)
JOINING_TYPE_OPTIONS = options_of("Domestic", "International", "Mid-Lateral")
JOINING_STATUS_OPTIONS = options_of("Joining Details Not Received", "Joining Details Received", "Pending")
LEAVE_STATUS_OPTIONS = options_of("Approved", "Rejected", "Pending")
LEAVE_TYPE_OPTIONS = options_of("Half Day", "Full Day", "Early Logout")
LEAVE_REASON_OPTIONS = options_of("Casual Leave", "Sick Leave", "Privilege Leave", "Early Logout")

DATE_RANGE_TYPE_OPTIONS = labelled(("day", "Daily"), ("month", "Monthly"), ("year", "Yearly"))
