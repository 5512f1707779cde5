from __future__ import annotations

from dataclasses import dataclass

from recruitdesk.core import options as opts
from recruitdesk.types import LookupOption, PagingMode


@dataclass(frozen=True)
class FilterColumn:
    name: str
    label: str
    path: str
    options: tuple[LookupOption, ...] = ()
    lookup: str | None = None


@dataclass(frozen=True)
class TableProfile:
    name: str
    title: str
    resource: str
    paging: PagingMode
    filters: tuple[FilterColumn, ...] = ()
    search_fields: tuple[str, ...] = ()
    date_fields: tuple[str, ...] = ("createdAt", "updatedAt")
    id_field: str = "_id"

    def filter_column(self, name: str) -> FilterColumn:
        for column in self.filters:
            if column.name == name:
                return column
        raise ValueError(f"table '{self.name}' has no filter column '{name}'")


CALL_DETAILS_TABLE = TableProfile(
    name="call_details",
    title="Call Details",
    resource="candidates",
    paging="server",
    filters=(
        FilterColumn("callStatus", "Call Status", "callStatus", opts.CALL_STATUS_OPTIONS),
        FilterColumn("experience", "Experience", "experience", opts.EXPERIENCE_OPTIONS),
        FilterColumn("gender", "Gender", "gender", opts.GENDER_OPTIONS),
        FilterColumn("communication", "Communication", "communication", opts.COMMUNICATION_OPTIONS),
        FilterColumn("shift", "Shift", "shift", opts.SHIFT_OPTIONS),
        FilterColumn("qualification", "Qualification", "qualification", lookup="qualifications"),
        FilterColumn("locality", "Locality", "locality", lookup="localities"),
        FilterColumn("dataSaved", "Data Saved", "dataSaved", opts.DATA_SAVED_OPTIONS),
    ),
    search_fields=(
        "name",
        "mobileNo",
        "whatsappNo",
        "source",
        "gender",
        "experience",
        "qualification",
        "state",
        "city",
        "locality",
        "salaryExpectation",
        "communication",
        "noticePeriod",
        "shift",
        "relocation",
        "companyProfile",
        "callStatus",
        "callSummary",
        "callDuration",
        "lineupCompany",
        "lineupProcess",
        "lineupDate",
        "interviewDate",
        "walkinDate",
    ),
)

LINEUPS_TABLE = TableProfile(
    name="lineups",
    title="Lineups",
    resource="lineups",
    paging="server",
    filters=(
        FilterColumn("company", "Company", "company", opts.COMPANY_OPTIONS),
        FilterColumn("process", "Process", "process"),
        FilterColumn("status", "Status", "status", opts.LINEUP_STATUS_OPTIONS),
    ),
    search_fields=("name", "contactNumber", "company", "process", "status"),
)

WALKINS_TABLE = TableProfile(
    name="walkins",
    title="Walkins",
    resource="walkins",
    paging="server",
    filters=(FilterColumn("status", "Status", "status"),),
    search_fields=("candidateName", "contactNumber"),
)

JOININGS_TABLE = TableProfile(
    name="joinings",
    title="Joinings",
    resource="joinings",
    paging="server",
    filters=(
        FilterColumn("joiningType", "Joining Type", "joiningType", opts.JOINING_TYPE_OPTIONS),
        FilterColumn("status", "Status", "status", opts.JOINING_STATUS_OPTIONS),
    ),
    search_fields=(
        "candidateName",
        "company",
        "process",
        "joiningType",
        "contactNumber",
        "incentiveSummary.incentives.eligible",
    ),
)

LEAVES_TABLE = TableProfile(
    name="leaves",
    title="Leaves",
    resource="leaves",
    paging="client",
    filters=(
        FilterColumn("status", "Status", "status", opts.LEAVE_STATUS_OPTIONS),
        FilterColumn("leaveType", "Leave Type", "leaveType", opts.LEAVE_TYPE_OPTIONS),
    ),
    search_fields=("leaveType", "leaveReason", "description", "status"),
    date_fields=("startDate", "endDate", "createdAt", "updatedAt"),
)

TABLES: dict[str, TableProfile] = {
    table.name: table for table in (CALL_DETAILS_TABLE, LINEUPS_TABLE, WALKINS_TABLE, JOININGS_TABLE, LEAVES_TABLE)
}


def table_for(name: str) -> TableProfile:
    try:
        return TABLES[name]
    except KeyError:
        raise ValueError(f"unknown table '{name}'") from None
