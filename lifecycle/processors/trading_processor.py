"""Trading module processor: trade facility, then the DD checklist template."""

from lifecycle.processors.processor_base import ModuleProcessor
from lifecycle.pydantic_models.cascade_models import CascadeDataPackage, TradingCascade
from lifecycle.pydantic_models.results import TradingResult
from lifecycle.pydantic_models.run_config import RunConfig


class TradingProcessor(ModuleProcessor[TradingResult]):
    name = "trading"
    result_type = TradingResult

    def select(self, cascade: CascadeDataPackage) -> TradingCascade | None:
        return cascade.trading

    async def _write(
        self,
        data: TradingCascade,
        cascade: CascadeDataPackage,
        config: RunConfig,
        result: TradingResult,
    ) -> None:
        if data.facility is not None:
            facility = await self.store.create_facility({
                **self.base_record(config),
                **data.facility.model_dump(mode="json"),
            })
            result.facility_created = True
            result.facility_id = facility["id"]
            result.transferability_identified = True

        # The checklist is a template, not tied to the facility row
        if data.dd_checklist_items:
            await self.store.upsert_dd_checklist_template({
                **self.base_record(config),
                "template_name": f"Generated from {config.document_id}",
                "items": [item.model_dump(mode="json") for item in data.dd_checklist_items],
            })
            result.dd_checklist_items_generated = len(data.dd_checklist_items)
