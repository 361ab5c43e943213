"""Compliance module processor.

Writes, each depending on the previous one:
1. the compliance facility
2. its covenants
3. its reporting obligations
4. the calendar events generated for those obligations

Covenants and obligations are skipped when no facility could be created,
since both are keyed by facility id.
"""

from lifecycle.processors.processor_base import ModuleProcessor, review_status
from lifecycle.pydantic_models.cascade_models import CascadeDataPackage, ComplianceCascade
from lifecycle.pydantic_models.results import ComplianceResult
from lifecycle.pydantic_models.run_config import RunConfig


class ComplianceProcessor(ModuleProcessor[ComplianceResult]):
    name = "compliance"
    result_type = ComplianceResult

    def select(self, cascade: CascadeDataPackage) -> ComplianceCascade | None:
        return cascade.compliance

    async def _write(
        self,
        data: ComplianceCascade,
        cascade: CascadeDataPackage,
        config: RunConfig,
        result: ComplianceResult,
    ) -> None:
        if data.facility_data is None:
            self.log("No facility data; covenants and obligations need a facility", level="warning")
            return

        facility = await self.store.create_facility({
            **self.base_record(config),
            **data.facility_data.model_dump(mode="json"),
            "status": "active",
        })
        result.facility_created = True
        result.facility_id = facility["id"]

        if data.covenants:
            created = await self.store.create_covenants([
                {
                    "facility_id": facility["id"],
                    "source_document_id": config.document_id,
                    **c.model_dump(mode="json", exclude={"confidence"}),
                    "extraction_confidence": c.confidence,
                    "review_status": review_status(c.requires_review, config),
                    "is_active": True,
                }
                for c in data.covenants
            ])
            result.covenants_created = len(created)
            result.items_pending_review += sum(1 for c in created if c.get("requires_review"))

        if data.obligations:
            created = await self.store.create_obligations([
                {
                    "facility_id": facility["id"],
                    "source_document_id": config.document_id,
                    **o.model_dump(mode="json", exclude={"confidence"}),
                    "extraction_confidence": o.confidence,
                    "review_status": review_status(o.requires_review, config),
                    "is_active": True,
                }
                for o in data.obligations
            ])
            result.obligations_created = len(created)
            result.items_pending_review += sum(1 for o in created if o.get("requires_review"))

            # Stores return rows in insertion order
            obligation_ids = [o["id"] for o in created]
            if data.calendar_events:
                events = await self.store.create_events([
                    {
                        "facility_id": facility["id"],
                        "obligation_id": obligation_ids[e.obligation_index],
                        **e.model_dump(mode="json", exclude={"obligation_index"}),
                    }
                    for e in data.calendar_events
                ])
                result.events_scheduled = len(events)

        self.log(
            "Compliance records written",
            covenants=result.covenants_created,
            obligations=result.obligations_created,
            events=result.events_scheduled,
        )
