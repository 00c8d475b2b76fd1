"""plugin for read-only Kubernetes inspection.

Every tool returns a JSON string. Failures (missing arguments, kubectl
errors, unparsable output) are returned as {"error": "..."} and never raised,
so the agent can read them and try something else.
"""

import json
import subprocess
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

import structlog
from pydantic import Field

from rollout_agent.config import Config
from rollout_agent.plugins.base import BasePlugin
from rollout_agent.utils.command import run_command

logger = structlog.get_logger(__name__)


class KubectlError(Exception):
    """Raised when a kubectl command exits with a non-zero status."""


def _error(message: str) -> str:
    return json.dumps({"error": message})


def _container_state(state: Dict[str, Any]) -> Dict[str, Any]:
    if "running" in state:
        return {"state": "Running", "startedAt": state["running"].get("startedAt")}
    if "waiting" in state:
        waiting = state["waiting"]
        return {"state": "Waiting", "reason": waiting.get("reason"), "message": waiting.get("message")}
    if "terminated" in state:
        terminated = state["terminated"]
        return {
            "state": "Terminated",
            "reason": terminated.get("reason"),
            "message": terminated.get("message"),
            "exitCode": terminated.get("exitCode"),
        }
    return {"state": "Unknown"}


class KubernetesPlugin(BasePlugin):
    """plugin for Kubernetes operations."""

    def __init__(self, config: Config):
        self.name = "KubernetesPlugin"
        self.context = config.kubernetes_context
        self.timeout = config.kubectl_timeout_seconds
        self.default_tail_lines = config.logs_tail_lines
        self.default_events_limit = config.events_limit

    def _kubectl(self, args: List[str], namespace: Optional[str] = None) -> str:
        """Run kubectl with the configured context and return stdout."""
        cmd = ["kubectl"]
        if self.context:
            cmd.extend(["--context", self.context])
        if namespace:
            cmd.extend(["--namespace", namespace])
        cmd.extend(args)

        result = run_command(cmd, timeout=self.timeout)
        if result.returncode != 0:
            raise KubectlError(f"{' '.join(cmd)} failed: {result.stderr.strip()}")
        return result.stdout

    def _kubectl_json(self, args: List[str], namespace: Optional[str] = None) -> Dict[str, Any]:
        return json.loads(self._kubectl(args + ["-o", "json"], namespace=namespace))

    def debug_pod(
        self,
        namespace: Annotated[str, "The Kubernetes namespace containing the pod"] = "",
        pod_name: Annotated[str, "The name of the pod to debug"] = "",
    ) -> Annotated[str, "JSON object with pod phase, conditions, container states and owners"]:
        """Debug a Kubernetes pod to get detailed information about its status and conditions."""
        logger.info("Executing tool: debug_pod", namespace=namespace, pod=pod_name)
        if not namespace or not pod_name:
            return _error("namespace and pod_name are required")

        try:
            pod = self._kubectl_json(["get", "pod", pod_name], namespace=namespace)
        except (KubectlError, json.JSONDecodeError, OSError, subprocess.SubprocessError) as e:
            logger.error("Error debugging pod", namespace=namespace, pod=pod_name, error=str(e))
            return _error(str(e))

        metadata = pod.get("metadata", {})
        status = pod.get("status", {})

        containers = []
        for cs in status.get("containerStatuses") or []:
            info = {
                "name": cs.get("name"),
                "ready": cs.get("ready"),
                "restartCount": cs.get("restartCount", 0),
                "image": cs.get("image"),
            }
            info.update(_container_state(cs.get("state") or {}))
            last_terminated = (cs.get("lastState") or {}).get("terminated")
            if last_terminated:
                info["lastTerminated"] = {
                    "reason": last_terminated.get("reason") or "",
                    "exitCode": last_terminated.get("exitCode"),
                    "message": last_terminated.get("message") or "",
                }
            containers.append(info)

        result = {
            "podName": pod_name,
            "namespace": namespace,
            "phase": status.get("phase"),
            "reason": status.get("reason"),
            "message": status.get("message"),
            "hostIP": status.get("hostIP"),
            "podIP": status.get("podIP"),
            "startTime": status.get("startTime"),
            "conditions": [
                {
                    "type": c.get("type"),
                    "status": c.get("status"),
                    "reason": c.get("reason") or "",
                    "message": c.get("message") or "",
                    "lastTransitionTime": c.get("lastTransitionTime") or "",
                }
                for c in status.get("conditions") or []
            ],
            "containerStatuses": containers,
            "labels": metadata.get("labels", {}),
        }
        owners = metadata.get("ownerReferences") or []
        if owners:
            result["owners"] = [{"kind": o.get("kind"), "name": o.get("name")} for o in owners]

        return json.dumps(result, indent=2)

    def get_events(
        self,
        namespace: Annotated[str, "The Kubernetes namespace to list events from"] = "",
        pod_name: Annotated[Optional[str], Field(description="Only events involving this pod")] = None,
        limit: Annotated[Optional[int], Field(description="Maximum number of events (default: 50)")] = None,
    ) -> Annotated[str, "JSON object with the most recent events first"]:
        """Get Kubernetes events for a namespace or specific pod."""
        logger.info("Executing tool: get_events", namespace=namespace, pod=pod_name, limit=limit)
        if not namespace:
            return _error("namespace is required")

        event_limit = limit if limit and limit > 0 else self.default_events_limit
        try:
            items = self._kubectl_json(["get", "events"], namespace=namespace).get("items", [])
        except (KubectlError, json.JSONDecodeError, OSError, subprocess.SubprocessError) as e:
            logger.error("Error getting events", namespace=namespace, error=str(e))
            return _error(str(e))

        if pod_name:
            items = [e for e in items if (e.get("involvedObject") or {}).get("name") == pod_name]

        def _timestamp(event: Dict[str, Any]) -> str:
            return event.get("lastTimestamp") or event.get("metadata", {}).get("creationTimestamp") or ""

        items.sort(key=_timestamp, reverse=True)
        events = [
            {
                "type": e.get("type") or "Normal",
                "reason": e.get("reason") or "",
                "message": e.get("message") or "",
                "count": e.get("count") or 1,
                "firstTimestamp": e.get("firstTimestamp") or "",
                "lastTimestamp": e.get("lastTimestamp") or "",
                "involvedObject": {
                    "kind": (e.get("involvedObject") or {}).get("kind"),
                    "name": (e.get("involvedObject") or {}).get("name"),
                },
            }
            for e in items[:event_limit]
        ]
        logger.debug("Retrieved events", count=len(events))
        return json.dumps({"namespace": namespace, "eventCount": len(events), "events": events}, indent=2)

    def get_logs(
        self,
        namespace: Annotated[str, "The Kubernetes namespace containing the pod"] = "",
        pod_name: Annotated[str, "The name of the pod to fetch logs from"] = "",
        container_name: Annotated[Optional[str], Field(description="Optional container name within the pod")] = None,
        previous: Annotated[bool, "Fetch logs of the previous (crashed) container instance"] = False,
        tail_lines: Annotated[Optional[int], Field(description="Number of lines from the end (default: 100)")] = None,
    ) -> Annotated[str, "JSON object with the pod logs"]:
        """Get logs from a Kubernetes pod."""
        logger.info("Executing tool: get_logs", namespace=namespace, pod=pod_name, container=container_name)
        if not namespace or not pod_name:
            return _error("namespace and pod_name are required")

        lines = tail_lines if tail_lines and tail_lines > 0 else self.default_tail_lines
        args = ["logs", pod_name, "--tail", str(lines)]
        if container_name:
            args.extend(["--container", container_name])
        if previous:
            args.append("--previous")

        try:
            logs = self._kubectl(args, namespace=namespace)
        except (KubectlError, OSError, subprocess.SubprocessError) as e:
            logger.error("Error getting logs", namespace=namespace, pod=pod_name, error=str(e))
            return _error(str(e))

        logger.debug("Retrieved logs", characters=len(logs))
        return json.dumps(
            {
                "namespace": namespace,
                "podName": pod_name,
                "container": container_name or "default",
                "previous": previous,
                "logs": logs or "(no logs available)",
            },
            indent=2,
        )

    def get_metrics(
        self,
        namespace: Annotated[str, "The Kubernetes namespace containing the pod"] = "",
        pod_name: Annotated[str, "The name of the pod to get metrics for"] = "",
    ) -> Annotated[str, "JSON object with CPU and memory usage per container"]:
        """Get resource metrics for a Kubernetes pod (requires metrics-server)."""
        logger.info("Executing tool: get_metrics", namespace=namespace, pod=pod_name)
        if not namespace or not pod_name:
            return _error("namespace and pod_name are required")

        try:
            output = self._kubectl(["top", "pod", pod_name, "--containers", "--no-headers"], namespace=namespace)
        except (KubectlError, OSError, subprocess.SubprocessError) as e:
            logger.error("Error getting metrics", namespace=namespace, pod=pod_name, error=str(e))
            return _error(f"Metrics not available (metrics-server might not be installed): {e}")

        containers = []
        for line in output.splitlines():
            fields = line.split()
            # POD CONTAINER CPU MEMORY
            if len(fields) >= 4:
                containers.append({"name": fields[1], "cpu": fields[2], "memory": fields[3]})

        if not containers:
            return _error("Metrics not available (metrics-server might not be installed)")

        return json.dumps(
            {
                "namespace": namespace,
                "podName": pod_name,
                "timestamp": datetime.now().isoformat(),
                "containers": containers,
            },
            indent=2,
        )

    def inspect_resources(
        self,
        namespace: Annotated[str, "The Kubernetes namespace to inspect"] = "",
        resource_type: Annotated[
            Optional[str], Field(description="'deployment' or 'service'; both when omitted")
        ] = None,
        resource_name: Annotated[Optional[str], Field(description="Only the resource with this name")] = None,
    ) -> Annotated[str, "JSON object with deployments and/or services"]:
        """Inspect Kubernetes deployments and services in a namespace."""
        logger.info(
            "Executing tool: inspect_resources",
            namespace=namespace,
            resource_type=resource_type,
            resource_name=resource_name,
        )
        if not namespace:
            return _error("namespace is required")

        kind = (resource_type or "").lower()
        result: Dict[str, Any] = {"namespace": namespace}
        try:
            if not kind or kind == "deployment":
                items = self._kubectl_json(["get", "deployments"], namespace=namespace).get("items", [])
                result["deployments"] = [
                    {
                        "name": d["metadata"]["name"],
                        "replicas": d.get("status", {}).get("replicas", 0),
                        "availableReplicas": d.get("status", {}).get("availableReplicas", 0),
                        "readyReplicas": d.get("status", {}).get("readyReplicas", 0),
                    }
                    for d in items
                    if not resource_name or d["metadata"]["name"] == resource_name
                ]
            if not kind or kind == "service":
                items = self._kubectl_json(["get", "services"], namespace=namespace).get("items", [])
                result["services"] = [
                    {
                        "name": s["metadata"]["name"],
                        "type": s.get("spec", {}).get("type"),
                        "clusterIP": s.get("spec", {}).get("clusterIP") or "",
                        "ports": [
                            f"{p.get('port')}:{p.get('targetPort')}" for p in s.get("spec", {}).get("ports") or []
                        ],
                    }
                    for s in items
                    if not resource_name or s["metadata"]["name"] == resource_name
                ]
        except (KubectlError, json.JSONDecodeError, KeyError, OSError, subprocess.SubprocessError) as e:
            logger.error("Error inspecting resources", namespace=namespace, error=str(e))
            return _error(str(e))

        return json.dumps(result, indent=2)

    def get_tools(self) -> list:
        return [
            self.debug_pod,
            self.get_events,
            self.get_logs,
            self.get_metrics,
            self.inspect_resources,
        ]
