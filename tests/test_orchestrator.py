import threading

import pytest

from appservice_kit import orchestrator
from appservice_kit.dispatcher import DeployOptions, Transports
from appservice_kit.errors import (
    DeployError,
    DeployErrorKind,
    OperationCancelled,
    ProvisionError,
)
from appservice_kit.models import ExternalRepository, FileTransfer, LocalVersionControl
from appservice_kit.readiness import ProbeOutcome
from appservice_kit.teardown import TeardownOutcome


NAMES = ["app1", "app2", "app3", "app4"]


def _ready(url: str) -> ProbeOutcome:
    return ProbeOutcome(url, True, 1, 0.0, 200)


def _never_ready(url: str) -> ProbeOutcome:
    return ProbeOutcome(url, False, 3, 0.5, 503)


def _options(transports, probe=_ready) -> DeployOptions:
    return DeployOptions(
        probe=probe,
        github_token="gh-token",
        transports=Transports(upload=transports.upload, push=transports.push),
    )


def _run(cfg, provider, transports, probe=_ready, **kwargs):
    return orchestrator.run_sample(
        cfg,
        provider,
        specs=orchestrator.build_site_specs(cfg, NAMES),
        group_name="rg-test",
        options=_options(transports, probe),
        **kwargs,
    )


def test_build_site_specs_declares_four_strategies_in_order(sample_config) -> None:
    specs = orchestrator.build_site_specs(sample_config, NAMES)

    assert [s.name for s in specs] == NAMES
    assert isinstance(specs[0].descriptor, FileTransfer)
    assert isinstance(specs[1].descriptor, LocalVersionControl)
    assert isinstance(specs[2].descriptor, ExternalRepository)
    assert not specs[2].descriptor.continuous_integration
    assert isinstance(specs[3].descriptor, ExternalRepository)
    assert specs[3].descriptor.continuous_integration
    assert all(s.app_settings == {"PORT": "8080"} for s in specs)
    # 웹앱마다 독립된 설정 dict 를 가진다.
    specs[0].app_settings["EXTRA"] = "1"
    assert "EXTRA" not in specs[1].app_settings
    assert specs[0].probe_path == "/helloworld"


def test_build_site_specs_generates_unique_names(sample_config) -> None:
    specs = orchestrator.build_site_specs(sample_config)

    names = [s.name for s in specs]
    assert len(set(names)) == 4
    assert names[0].startswith("webapp1-")


def test_four_site_scenario(sample_config, fake_provider, transports) -> None:
    # CI 웹앱의 준비 상태 확인이 끝내 성공하지 못해도 실행 자체는 성공해야 한다.
    def probe(url: str) -> ProbeOutcome:
        return _never_ready(url) if "app4" in url else _ready(url)

    report = _run(sample_config, fake_provider, transports, probe=probe)

    assert report.error is None
    assert report.exit_code == 0
    assert fake_provider.count("create_site") == 4
    assert len(fake_provider.plans_created) == 1
    assert transports.uploads == [("app1", sample_config.ftp_artifact_path)]
    assert transports.pushes == [("app2", sample_config.local_git_source_dir)]
    assert list(fake_provider.bound) == ["app3", "app4"]
    assert fake_provider.count("delete_resource_group") == 1
    assert fake_provider.calls[-1] == ("delete_resource_group", "rg-test")
    assert report.teardown is TeardownOutcome.DELETED
    assert len(report.warnings) == 1
    assert "app4" in report.warnings[0]


def test_plan_created_once_and_shared(sample_config, fake_provider, transports) -> None:
    _run(sample_config, fake_provider, transports)

    plan_id = fake_provider.plans_created[0]
    assert fake_provider.site_plan_refs == {
        "app1": None,
        "app2": plan_id,
        "app3": plan_id,
        "app4": plan_id,
    }


def test_resource_group_failure_skips_deletion(sample_config, fake_provider, transports) -> None:
    fake_provider.fail[("create_resource_group", None)] = ProvisionError("quota exceeded")

    report = _run(sample_config, fake_provider, transports)

    assert isinstance(report.error, ProvisionError)
    assert report.exit_code == 3
    assert report.teardown is TeardownOutcome.NOTHING_TO_CLEAN
    assert fake_provider.count("delete_resource_group") == 0
    assert fake_provider.count("create_site") == 0


def test_deploy_error_on_site_two_is_fail_fast(sample_config, fake_provider, transports) -> None:
    def failing_push(creds, site_name, source_dir, *, branch="master"):  # noqa: ARG001
        raise DeployError(DeployErrorKind.TRANSPORT, "git push rejected")

    transports.push = failing_push

    report = _run(sample_config, fake_provider, transports)

    assert isinstance(report.error, DeployError)
    assert report.error.site == "app2"
    assert report.exit_code == 4
    assert fake_provider.count("create_site") == 2
    assert "app3" not in fake_provider.bound
    assert [n.split(" ")[0] for n in report.not_attempted] == ["app3", "app4"]
    assert fake_provider.count("delete_resource_group") == 1


def test_site_creation_failure_still_deletes_group(sample_config, fake_provider, transports) -> None:
    fake_provider.fail[("create_site", "app3")] = ProvisionError("name taken")

    report = _run(sample_config, fake_provider, transports)

    assert isinstance(report.error, ProvisionError)
    assert fake_provider.count("delete_resource_group") == 1
    assert [r.site for r in report.results] == ["app1", "app2"]
    assert report.sites_created == ["app1", "app2"]
    # 생성을 시도하다 실패한 웹앱은 "Not attempted" 에 들어가지 않는다.
    assert report.not_attempted == ["app4 (github-ci)"]


def test_teardown_failure_does_not_mask_success(sample_config, fake_provider, transports) -> None:
    fake_provider.fail[("delete_resource_group", None)] = RuntimeError("delete timed out")

    report = _run(sample_config, fake_provider, transports)

    assert report.error is None
    assert report.exit_code == 0
    assert report.teardown is TeardownOutcome.FAILED


def test_teardown_failure_keeps_original_error(sample_config, fake_provider, transports) -> None:
    fake_provider.fail[("create_site", "app1")] = ProvisionError("bad sku")
    fake_provider.fail[("delete_resource_group", None)] = RuntimeError("delete timed out")

    report = _run(sample_config, fake_provider, transports)

    assert isinstance(report.error, ProvisionError)
    assert report.teardown is TeardownOutcome.FAILED
    assert fake_provider.count("delete_resource_group") == 1


def test_unexpected_exception_propagates_after_teardown(sample_config, fake_provider, transports) -> None:
    def broken_upload(*args, **kwargs):  # noqa: ARG001
        raise KeyError("bug")

    transports.upload = broken_upload

    with pytest.raises(KeyError):
        _run(sample_config, fake_provider, transports)

    assert fake_provider.count("delete_resource_group") == 1


def test_cancellation_before_start_creates_nothing(sample_config, fake_provider, transports) -> None:
    cancel = threading.Event()
    cancel.set()

    report = _run(sample_config, fake_provider, transports, cancel=cancel)

    assert isinstance(report.error, OperationCancelled)
    assert report.exit_code == 5
    assert fake_provider.count("create_resource_group") == 0
    assert fake_provider.count("delete_resource_group") == 0


def test_cancellation_mid_run_still_tears_down(sample_config, fake_provider, transports) -> None:
    cancel = threading.Event()

    def probe(url: str) -> ProbeOutcome:
        cancel.set()
        return _ready(url)

    report = _run(sample_config, fake_provider, transports, probe=probe, cancel=cancel)

    assert isinstance(report.error, OperationCancelled)
    assert fake_provider.count("create_site") == 1
    assert fake_provider.count("delete_resource_group") == 1


def test_duplicate_site_names_rejected_before_any_call(sample_config, fake_provider, transports) -> None:
    specs = orchestrator.build_site_specs(sample_config, ["dup", "dup", "c", "d"])

    report = orchestrator.run_sample(
        sample_config,
        fake_provider,
        specs=specs,
        group_name="rg-test",
        options=_options(transports),
    )

    assert isinstance(report.error, ProvisionError)
    assert fake_provider.calls == []


def test_summary_lists_sections(sample_config, fake_provider, transports) -> None:
    report = _run(sample_config, fake_provider, transports)

    summary = report.summary()
    assert "# Run summary" in summary
    assert "- app1 (ftp): ready" in summary
    assert "- app4 (github-ci): ready" in summary
    assert "- OK" in summary
    assert "teardown: deleted" in summary


def test_plan_all_makes_no_calls(sample_config) -> None:
    specs = orchestrator.build_site_specs(sample_config, NAMES)

    text = orchestrator.plan_all(sample_config, specs, "rg-test")

    assert "- resource group: rg-test" in text
    assert "1. app1 [ftp]" in text
    assert "2. app2 [local-git]" in text
    assert "3. app3 [public-git]" in text
    assert "4. app4 [github-ci]" in text


def test_unavailable_site_name_stops_before_creation(sample_config, fake_provider, transports) -> None:
    fake_provider.taken_names = {"app1"}

    report = _run(sample_config, fake_provider, transports)

    assert isinstance(report.error, ProvisionError)
    assert report.error.resource == "app1"
    assert report.exit_code == 3
    assert fake_provider.count("check_name_availability") == 1
    assert fake_provider.count("create_site") == 0
    assert fake_provider.count("delete_resource_group") == 1
    assert report.teardown is TeardownOutcome.DELETED


def test_name_checked_before_each_site(sample_config, fake_provider, transports) -> None:
    _run(sample_config, fake_provider, transports)

    creation = [c for c in fake_provider.calls if c[0] in ("check_name_availability", "create_site")]
    assert creation == [
        (method, name) for name in NAMES for method in ("check_name_availability", "create_site")
    ]


def test_first_site_readiness_timeout_continues(sample_config, fake_provider, transports) -> None:
    def probe(url: str) -> ProbeOutcome:
        return _never_ready(url) if "app1" in url else _ready(url)

    report = _run(sample_config, fake_provider, transports, probe=probe)

    assert report.error is None
    assert report.exit_code == 0
    assert [r.site for r in report.results] == NAMES
    assert not report.results[0].ready
    assert all(r.ready for r in report.results[1:])
    assert len(report.warnings) == 1
    assert "app1" in report.warnings[0]
    assert fake_provider.count("delete_resource_group") == 1
