import pytest

from nixsamba.core.models import ShareSpec


MINIMAL_CONFIG = """{ config, pkgs, ... }:

{
  imports = [ ./hardware-configuration.nix ];

  boot.loader.systemd-boot.enable = true;
}
"""

SINGLE_SHARE_CONFIG = """{ config, pkgs, ... }:

{
  imports = [ ./hardware-configuration.nix ];

  services.samba.settings = {
    "myTest1a" = {
      path = "/home/mika/testShare";
      browseable = yes;
      "read only" = no;
      "guest ok" = no;
      "force user" = "mika";
      "force group" = "users";
    };
  };
}
"""

THREE_SHARES_CONFIG = """{ config, pkgs, ... }:

{
  services.samba = {
    enable = true;
    settings = {
      global = {
        "workgroup" = "WORKGROUP";
        "guest account" = "nobody";
      };
      "share1" = {
        path = "/srv/one";
        browseable = yes;
      };
      "share2" = {
        path = "/srv/two";
        browseable = yes;
      };
      "share3" = {
        path = "/srv/three";
        browseable = no;
      };
    };
  };
}
"""

EMPTY_SECTION_CONFIG = """{ config, pkgs, ... }:

{
  services.samba.settings = {
  };
}
"""


@pytest.fixture
def minimal_config():
    return MINIMAL_CONFIG


@pytest.fixture
def single_share_config():
    return SINGLE_SHARE_CONFIG


@pytest.fixture
def three_shares_config():
    return THREE_SHARES_CONFIG


@pytest.fixture
def empty_section_config():
    return EMPTY_SECTION_CONFIG


@pytest.fixture
def second_share():
    return ShareSpec(
        name="myTEst2",
        path="/home/mika/testShare2",
        browseable=True,
        read_only=True,
        guest_ok=False,
        force_user="_apt",
        force_group="adm",
    )
