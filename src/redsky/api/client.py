"""Thin synchronous client for the remote experiments service.

Links between resources travel in ``Link`` and ``Location`` response
headers and are kept on the ``*Meta`` objects of the wire models. There is
no retry logic; a failed request raises ``RemoteError`` immediately.
"""

from __future__ import annotations

import logging
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from redsky.models.remote import (
    ErrorType,
    ExperimentMeta,
    RemoteError,
    RemoteExperiment,
    TrialAssignments,
    TrialItem,
    TrialList,
    TrialMeta,
    TrialState,
    TrialValues,
)

logger = logging.getLogger(__name__)

REL_SELF = "self"
REL_NEXT = "next"
REL_TRIALS = "https://stormforge.io/rel/trials"
REL_LABELS = "https://stormforge.io/rel/labels"

_REL_ALIASES = {"trials": REL_TRIALS, "labels": REL_LABELS}

_DEFAULT_ERRORS: dict[int, ErrorType] = {
    401: ErrorType.UNAUTHORIZED,
    403: ErrorType.UNAUTHORIZED,
}


def parse_links(header: str) -> dict[str, str]:
    """Parse an RFC 8288 ``Link`` header into a rel -> URL map."""
    links: dict[str, str] = {}
    for part in header.split(","):
        part = part.strip()
        if not part.startswith("<") or ">" not in part:
            continue
        url, _, params = part[1:].partition(">")
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key.strip().lower() != "rel":
                continue
            for rel in value.strip().strip('"').split():
                links[_REL_ALIASES.get(rel, rel)] = url
    return links


def _experiment_meta(response: httpx.Response) -> ExperimentMeta:
    links = parse_links(response.headers.get("Link", ""))
    meta = ExperimentMeta(
        self_url=links.get(REL_SELF, response.headers.get("Content-Location", "")),
        next_trial_url=links.get(REL_NEXT, ""),
        trials_url=links.get(REL_TRIALS, ""),
        labels_url=links.get(REL_LABELS, ""),
    )
    last_modified = response.headers.get("Last-Modified")
    if last_modified:
        try:
            meta.last_modified = parsedate_to_datetime(last_modified)
        except (TypeError, ValueError):
            logger.debug("Ignoring invalid Last-Modified header %r", last_modified)
    return meta


class ExperimentsAPI:
    """Calls the remote experiments service.

    Args:
        base_url: Experiments collection URL (``.../v1/experiments/``).
        token: Bearer token sent with every request, if any.
        client: Preconfigured httpx client; one is created when omitted.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = client or httpx.Client()
        self.client.headers.update(headers)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> ExperimentsAPI:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        errors: dict[int, ErrorType] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        logger.debug("%s %s", method, url)
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise RemoteError(ErrorType.UNEXPECTED, f"{method} {url}: {exc}", location=url) from exc
        if response.is_success:
            return response

        error_type = {**_DEFAULT_ERRORS, **(errors or {})}.get(
            response.status_code, ErrorType.UNEXPECTED
        )
        message = response.text.strip() or response.reason_phrase
        try:
            body = response.json()
            if isinstance(body, dict):
                message = body.get("error") or body.get("message") or message
        except ValueError:
            pass
        raise RemoteError(error_type, f"{response.status_code}: {message}", location=url)

    def experiment_url(self, name: str) -> str:
        return f"{self.base_url}{name}"

    def get_experiment_by_name(self, name: str) -> RemoteExperiment:
        response = self._request(
            "GET",
            self.experiment_url(name),
            errors={404: ErrorType.EXPERIMENT_NOT_FOUND, 400: ErrorType.EXPERIMENT_NAME_INVALID},
        )
        experiment = RemoteExperiment.model_validate(response.json())
        experiment.meta = _experiment_meta(response)
        if not experiment.meta.self_url:
            experiment.meta.self_url = self.experiment_url(name)
        return experiment

    def create_experiment(self, name: str, experiment: RemoteExperiment) -> RemoteExperiment:
        response = self._request(
            "PUT",
            self.experiment_url(name),
            errors={
                400: ErrorType.EXPERIMENT_NAME_INVALID,
                409: ErrorType.EXPERIMENT_NAME_CONFLICT,
                422: ErrorType.EXPERIMENT_INVALID,
            },
            json=experiment.to_wire(),
        )
        created = RemoteExperiment.model_validate(response.json())
        created.meta = _experiment_meta(response)
        return created

    def get_all_trials(
        self, trials_url: str, status: list[TrialState] | None = None
    ) -> TrialList:
        """List the trials of an experiment, optionally filtered by state."""
        params = {}
        if status:
            params["status"] = ",".join(s.value for s in status)
        response = self._request(
            "GET", trials_url, errors={404: ErrorType.EXPERIMENT_NOT_FOUND}, params=params
        )
        body = response.json()
        result = TrialList()
        for raw in body.get("trials") or []:
            item = TrialItem.model_validate(raw)
            meta = raw.get("_metadata") or {}
            links = parse_links(meta.get("Link", ""))
            item.meta = TrialMeta(
                self_url=links.get(REL_SELF, ""), labels_url=links.get(REL_LABELS, "")
            )
            result.trials.append(item)
        return result

    def create_trial(self, trials_url: str, assignments: TrialAssignments) -> TrialAssignments:
        """Submit explicit assignments (e.g. the baseline) as a new trial."""
        response = self._request(
            "POST",
            trials_url,
            errors={404: ErrorType.EXPERIMENT_NOT_FOUND, 422: ErrorType.TRIAL_INVALID},
            json=assignments.to_wire(),
        )
        created = TrialAssignments.model_validate(response.json() if response.content else {})
        created.meta = TrialMeta(self_url=response.headers.get("Location", ""))
        return created

    def next_trial(self, next_trial_url: str) -> TrialAssignments:
        """Ask the optimizer for the next suggested assignments."""
        response = self._request(
            "POST",
            next_trial_url,
            errors={
                404: ErrorType.EXPERIMENT_NOT_FOUND,
                410: ErrorType.EXPERIMENT_STOPPED,
                503: ErrorType.TRIAL_UNAVAILABLE,
            },
        )
        suggestion = TrialAssignments.model_validate(response.json())
        links = parse_links(response.headers.get("Link", ""))
        suggestion.meta = TrialMeta(
            self_url=response.headers.get("Location", ""), labels_url=links.get(REL_LABELS, "")
        )
        return suggestion

    def report_trial(self, report_trial_url: str, values: TrialValues) -> None:
        self._request(
            "POST",
            report_trial_url,
            errors={
                404: ErrorType.TRIAL_NOT_FOUND,
                409: ErrorType.TRIAL_ALREADY_REPORTED,
                422: ErrorType.TRIAL_INVALID,
            },
            json=values.to_wire(),
        )

    def label_experiment(self, labels_url: str, labels: dict[str, str]) -> None:
        """Set labels on an experiment; an empty value removes the label."""
        self._request(
            "POST",
            labels_url,
            errors={404: ErrorType.EXPERIMENT_NOT_FOUND},
            json={"labels": labels},
        )

    def label_trial(self, labels_url: str, labels: dict[str, str]) -> None:
        """Set labels on a trial; an empty value removes the label."""
        self._request(
            "POST",
            labels_url,
            errors={404: ErrorType.TRIAL_NOT_FOUND},
            json={"labels": labels},
        )
