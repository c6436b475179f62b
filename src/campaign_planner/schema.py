from __future__ import annotations

IN_ACCOUNT_EVENTS = "In-Account Events (1:1)"
DIGITAL_MOTIONS_REGION = "Digital Motions"
SHIPPED_STATUS = "Shipped"
MODIFIED_FLAG = "__modified"

FORECAST_FIELDS = [
    "forecastedCost",
    "expectedLeads",
    "mqlForecast",
    "sqlForecast",
    "oppsForecast",
    "pipelineForecast",
]

EXECUTION_ONLY_FIELDS = [
    "actualLeads",
    "actualMQLs",
    "actualSQL",
    "actualOpportunities",
    "actualPipeline",
    "actualCost",
]

NUMERIC_FIELDS = FORECAST_FIELDS + EXECUTION_ONLY_FIELDS

NON_NEGATIVE_FIELDS = [
    "forecastedCost",
    "expectedLeads",
]

BOOLEAN_FIELDS = [
    "digitalMotions",
    MODIFIED_FLAG,
]

IMPORTABLE_FIELDS = [
    "expectedLeads",
    "mqlForecast",
]

DERIVATION_FIELDS = [
    "programType",
    "forecastedCost",
    "expectedLeads",
    "mqlForecast",
]

PLANNING_SYNC_FIELDS = frozenset(
    [
        "id",
        "campaignName",
        "description",
        "programType",
        "strategicPillars",
        "revenuePlay",
        "fiscalYear",
        "quarter",
        "region",
        "country",
        "owner",
        "status",
        "digitalMotions",
        "forecastedCost",
    ]
    + IMPORTABLE_FIELDS
)

REGION_METRIC_COLUMNS = [
    "region",
    "plan",
    "forecast",
    "actuals",
    "varPlan",
    "varActual",
]
