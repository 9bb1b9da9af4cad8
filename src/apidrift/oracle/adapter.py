from __future__ import annotations

from logging import getLogger
from typing import Iterable

from apidrift.domain.models import ObservedEndpoint
from apidrift.errors import OracleEmptyResponse, OracleMalformedResponse
from apidrift.oracle.client import OracleClient
from apidrift.oracle.prompt import build_prompt
from apidrift.reconcile.payload import RawPayload, extract_json_object

log = getLogger(__name__)

# most deterministic setting the service offers
ORACLE_TEMPERATURE = 0.0


class OracleAdapter:
    """Prompt in, verbatim payload out. Does no normalization."""

    def __init__(self, client: OracleClient, max_output_tokens: int = 8192):
        self.client = client
        self.max_output_tokens = max_output_tokens

    def invoke(
        self,
        contract_summary: str,
        source_summary: str,
        observed: Iterable[ObservedEndpoint],
    ) -> RawPayload:
        prompt = build_prompt(contract_summary, source_summary, observed)
        text = self.client.generate(
            prompt,
            temperature=ORACLE_TEMPERATURE,
            max_output_tokens=self.max_output_tokens,
        )
        if not text or not text.strip():
            raise OracleEmptyResponse("oracle returned an empty response", raw_text=text or "")

        try:
            data = extract_json_object(text)
        except OracleMalformedResponse:
            log.error("oracle response could not be parsed; raw text follows\n%s", text)
            raise
        log.debug("oracle payload keys: %s", sorted(data))
        return RawPayload(text=text, data=data)
