"""Scaffolder step synthesis for generated templates.

Step templates are authored once per dialect as YAML with ``{API_VERSION}``
and ``{KIND}`` tokens. A template is loaded, the publish step appended, and
only then are the tokens substituted across every string in the assembled
list.
"""

import logging
from typing import Any, Dict, List, Optional

import yaml

from xrd_ingestor.config import (
    PUBLISH_TARGET_BITBUCKET,
    PUBLISH_TARGET_BITBUCKET_CLOUD,
    PUBLISH_TARGET_GITLAB,
    PublishPhaseSettings,
)
from xrd_ingestor.dialect import DialectProfile

logger = logging.getLogger("xrd-ingestor")

API_VERSION_TOKEN = "{API_VERSION}"
KIND_TOKEN = "{KIND}"

CONTROL_PARAMS = [
    "owner",
    "pushToGit",
    "basePath",
    "manifestLayout",
    "_editData",
    "targetBranch",
    "repoUrl",
    "clusters",
]

_GENERATE_STEP = """\
- id: generateManifest
  name: Generate Kubernetes Resource Manifest
  action: {action}
  input:
    parameters: ${{{{ parameters }}}}
    nameParam: {name_param}
    namespaceParam: "{namespace_param}"
    ownerParam: owner
    excludeParams: {exclude_params}
    apiVersion: "{api_version}"
    kind: "{kind}"
    clusters: ${{{{ parameters.clusters if parameters.manifestLayout === 'cluster-scoped' and parameters.pushToGit else ['temp'] }}}}
    removeEmptyParams: true
"""

_MOVE_NAMESPACED_STEP = """\
- id: moveNamespacedManifest
  name: Move and Rename Manifest
  if: ${{{{ parameters.manifestLayout === 'namespace-scoped' }}}}
  action: fs:rename
  input:
    files:
      - from: ${{{{ steps.generateManifest.output.filePaths[0] }}}}
        to: "./${{{{ parameters.{namespace_param} }}}}/${{{{ steps.generateManifest.input.kind }}}}/${{{{ steps.generateManifest.output.filePaths[0].split('/').pop() }}}}"
"""

_MOVE_CUSTOM_STEP = """\
- id: moveCustomManifest
  name: Move and Rename Manifest
  if: ${{{{ parameters.manifestLayout === 'custom' }}}}
  action: fs:rename
  input:
    files:
      - from: ${{{{ steps.generateManifest.output.filePaths[0] }}}}
        to: "./${{{{ parameters.basePath }}}}/${{{{ parameters.{name_param} }}}}.yaml"
"""

PUBLISH_ACTIONS = {
    PUBLISH_TARGET_GITLAB: "publish:gitlab:merge-request",
    PUBLISH_TARGET_BITBUCKET: "publish:bitbucketServer:pull-request",
    PUBLISH_TARGET_BITBUCKET_CLOUD: "publish:bitbucketCloud:pull-request",
}
DEFAULT_PUBLISH_ACTION = "publish:github:pull-request"

PULL_REQUEST_OUTPUTS = {
    PUBLISH_TARGET_GITLAB: "mergeRequestUrl",
    PUBLISH_TARGET_BITBUCKET: "pullRequestUrl",
    PUBLISH_TARGET_BITBUCKET_CLOUD: "pullRequestUrl",
}


def _render_steps_template(
    action: str,
    name_param: str,
    namespace_param: str,
    exclude_params: List[str],
    api_version: str,
    kind: str,
) -> str:
    text = _GENERATE_STEP.format(
        action=action,
        name_param=name_param,
        namespace_param=namespace_param,
        exclude_params="[" + ", ".join(f"'{p}'" for p in exclude_params) + "]",
        api_version=api_version,
        kind=kind,
    )
    if namespace_param:
        text += _MOVE_NAMESPACED_STEP.format(namespace_param=namespace_param)
    text += _MOVE_CUSTOM_STEP.format(name_param=name_param)
    return text


def exclude_params(profile: DialectProfile) -> List[str]:
    """Form fields that steer generation and never reach the rendered manifest."""
    selection = (
        "compositionSelectionStrategy"
        if profile.settings_nesting_depth == 0
        else "crossplane.compositionSelectionStrategy"
    )
    params = [selection] + CONTROL_PARAMS + ["xrName"]
    if profile.needs_namespace:
        params.append("xrNamespace")
    return params


def xrd_steps_template(profile: DialectProfile) -> str:
    """Token-bearing step text for a dialect profile, rendered on every call."""
    return _render_steps_template(
        action="terasky:claim-template",
        name_param="xrName",
        namespace_param=profile.namespace_param,
        exclude_params=exclude_params(profile),
        api_version=API_VERSION_TOKEN,
        kind=KIND_TOKEN,
    )


def publish_action(publish: PublishPhaseSettings) -> str:
    return PUBLISH_ACTIONS.get(publish.target or "", DEFAULT_PUBLISH_ACTION)


def pull_request_url(publish: PublishPhaseSettings) -> str:
    output = PULL_REQUEST_OUTPUTS.get(publish.target or "", "remoteUrl")
    return '${{ steps["create-pull-request"].output.' + output + " }}"


def build_publish_step(
    publish: PublishPhaseSettings, name_param: str, kind: str
) -> Optional[Dict[str, Any]]:
    if publish.is_file_only:
        return None
    if publish.allow_repo_selection:
        repo_url = "${{ parameters.repoUrl }}"
        target_branch = "${{ parameters.targetBranch }}"
    else:
        repo_url = publish.repo_url
        target_branch = publish.target_branch
    return {
        "id": "create-pull-request",
        "name": "create-pull-request",
        "action": publish_action(publish),
        "if": "${{ parameters.pushToGit }}",
        "input": {
            "repoUrl": repo_url,
            "branchName": f"create-${{{{ parameters.{name_param} }}}}-resource",
            "title": f"Create {kind} Resource ${{{{ parameters.{name_param} }}}}",
            "description": f"Create {kind} Resource ${{{{ parameters.{name_param} }}}}",
            "targetBranchName": target_branch,
        },
    }


def substitute_tokens(value: Any, replacements: Dict[str, str]) -> Any:
    if isinstance(value, str):
        for token, replacement in replacements.items():
            value = value.replace(token, replacement)
        return value
    if isinstance(value, list):
        return [substitute_tokens(v, replacements) for v in value]
    if isinstance(value, dict):
        return {k: substitute_tokens(v, replacements) for k, v in value.items()}
    return value


def additional_steps(version: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Extra steps a schema author declared as a YAML list in ``steps.default``."""
    schema = (version.get("schema") or {}).get("openAPIV3Schema") or {}
    raw = ((schema.get("properties") or {}).get("steps") or {}).get("default")
    if not raw:
        return []
    try:
        steps = yaml.safe_load(raw) if isinstance(raw, str) else raw
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring unparsable additional steps for version {version.get('name')}: {e}")
        return []
    return list(steps) if isinstance(steps, list) else []


def build_xrd_steps(
    version: Dict[str, Any],
    xrd: Dict[str, Any],
    profile: DialectProfile,
    publish: PublishPhaseSettings,
) -> List[Dict[str, Any]]:
    spec = xrd.get("spec") or {}
    api_version = f"{spec.get('group', '')}/{version.get('name', '')}"
    names = spec.get("claimNames") if profile.has_claim_fields else spec.get("names")
    kind = (names or {}).get("kind") or ""

    steps = yaml.safe_load(xrd_steps_template(profile))
    publish_step = build_publish_step(publish, "xrName", KIND_TOKEN)
    if publish_step is not None:
        steps.append(publish_step)

    steps = substitute_tokens(steps, {API_VERSION_TOKEN: api_version, KIND_TOKEN: kind})
    return steps + additional_steps(version)


def build_crd_steps(
    version: Dict[str, Any],
    crd: Dict[str, Any],
    publish: PublishPhaseSettings,
) -> List[Dict[str, Any]]:
    spec = crd.get("spec") or {}
    namespaced = spec.get("scope") == "Namespaced"
    kind = (spec.get("names") or {}).get("kind") or ""
    params = ["compositionSelectionStrategy"] + CONTROL_PARAMS[1:] + ["name", "namespace", "owner"]

    text = _render_steps_template(
        action="terasky:crd-template",
        name_param="name",
        namespace_param="namespace" if namespaced else "",
        exclude_params=params,
        api_version=API_VERSION_TOKEN,
        kind=KIND_TOKEN,
    )
    steps = yaml.safe_load(text)
    publish_step = build_publish_step(publish, "name", KIND_TOKEN)
    if publish_step is not None:
        steps.append(publish_step)
    return substitute_tokens(
        steps,
        {API_VERSION_TOKEN: f"{spec.get('group', '')}/{version.get('name', '')}", KIND_TOKEN: kind},
    )
