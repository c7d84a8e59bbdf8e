# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/foundry/components/catalog.py

from .cert_manager import CertManagerComponent
from .contour import ContourComponent
from .dns import DNSComponent
from .external_dns import ExternalDNSComponent
from .gateway_api import GatewayAPIComponent
from .grafana import GrafanaComponent
from .k3s import K3sComponent
from .loki import LokiComponent
from .openbao import OpenBaoComponent
from .prometheus import PrometheusComponent
from .seaweedfs import SeaweedFSComponent
from .storage import StorageComponent
from .velero import VeleroComponent
from .zot import ZotComponent

ALL_COMPONENTS = (
    # host services, over SSH
    OpenBaoComponent,
    DNSComponent,
    ZotComponent,
    K3sComponent,
    # cluster add-ons
    StorageComponent,
    SeaweedFSComponent,
    PrometheusComponent,
    LokiComponent,
    GrafanaComponent,
    ExternalDNSComponent,
    VeleroComponent,
    GatewayAPIComponent,
    ContourComponent,
    CertManagerComponent,
)
