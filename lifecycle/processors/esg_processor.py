"""ESG module processor.

Writes the ESG facility first, then its KPIs, one batch of targets per KPI
that has any, and finally the use-of-proceeds categories. Facility name,
borrower and maturity are taken from the compliance view of the same
document when it has them.
"""

from datetime import timedelta

from lifecycle.core.config import ComplianceDefaults, ESGDefaults
from lifecycle.processors.processor_base import ModuleProcessor, review_status
from lifecycle.pydantic_models.cascade_models import CascadeDataPackage, ESGCascade
from lifecycle.pydantic_models.results import ESGResult
from lifecycle.pydantic_models.run_config import RunConfig


class ESGProcessor(ModuleProcessor[ESGResult]):
    name = "esg"
    result_type = ESGResult

    def select(self, cascade: CascadeDataPackage) -> ESGCascade | None:
        return cascade.esg

    def facility_record(self, data: ESGCascade, cascade: CascadeDataPackage, config: RunConfig) -> dict:
        facility_data = cascade.compliance.facility_data if cascade.compliance else None
        today = cascade.extracted_at.date()
        default_maturity = today + timedelta(days=ESGDefaults.MATURITY_FALLBACK_DAYS)

        return {
            **self.base_record(config),
            "facility_name": (
                facility_data.facility_name
                if facility_data and facility_data.facility_name
                else f"{ESGDefaults.FACILITY_NAME_PREFIX}{config.document_id[:8]}"
            ),
            "facility_reference": config.document_id[:ESGDefaults.FACILITY_REFERENCE_LENGTH],
            "borrower_name": facility_data.borrower_name if facility_data else ComplianceDefaults.UNKNOWN_BORROWER,
            "esg_loan_type": data.loan_type,
            "effective_date": today.isoformat(),
            "maturity_date": (
                facility_data.maturity_date
                if facility_data and facility_data.maturity_date
                else default_maturity.isoformat()
            ),
            "status": "active",
        }

    async def _write(
        self,
        data: ESGCascade,
        cascade: CascadeDataPackage,
        config: RunConfig,
        result: ESGResult,
    ) -> None:
        facility = await self.store.create_facility(self.facility_record(data, cascade, config))
        result.facility_created = True
        result.facility_id = facility["id"]

        if data.kpis:
            created_kpis = await self.store.create_kpis([
                {
                    "facility_id": facility["id"],
                    "source_document_id": config.document_id,
                    **kpi.model_dump(mode="json", exclude={"targets", "confidence"}),
                    "extraction_confidence": kpi.confidence,
                    "review_status": review_status(kpi.requires_review, config),
                    "is_active": True,
                }
                for kpi in data.kpis
            ])
            result.kpis_created = len(created_kpis)

            # Stores return rows in insertion order
            for row, kpi in zip(created_kpis, data.kpis):
                if not kpi.targets:
                    continue
                targets = await self.store.create_targets([
                    {
                        "kpi_id": row["id"],
                        "target_year": t.target_year,
                        "target_period": "annual",
                        "target_date": f"{t.target_year}-12-31",
                        "target_value": t.target_value,
                        "target_type": "absolute",
                        "margin_adjustment_bps": t.margin_adjustment_bps,
                    }
                    for t in kpi.targets
                ])
                result.targets_created += len(targets)

        if data.proceeds_categories:
            categories = await self.store.create_proceeds_categories([
                {"facility_id": facility["id"], **c.model_dump(mode="json")}
                for c in data.proceeds_categories
            ])
            result.proceeds_categories_created = len(categories)

        self.log(
            "ESG records written",
            loan_type=data.loan_type,
            kpis=result.kpis_created,
            targets=result.targets_created,
        )
