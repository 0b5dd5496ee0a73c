from __future__ import annotations

from orion.modules.bash import MacBashModule
from orion.modules.dirlist import MacDirlistModule, WindowsDirlistModule
from orion.modules.lsof import MacLiveLsofModule
from orion.modules.netstat import MacLiveNetstatModule
from orion.modules.pslist import MacLivePslistModule, WindowsLivePslistModule
from orion.modules.ssh import MacSSHModule
from orion.modules.systemversion import MacSystemVersionModule

# New modules only need an entry here to become schedulable by name.
BUILTIN_MODULES = [
    MacDirlistModule,
    MacBashModule,
    MacSSHModule,
    MacSystemVersionModule,
    MacLivePslistModule,
    MacLiveNetstatModule,
    MacLiveLsofModule,
    WindowsDirlistModule,
    WindowsLivePslistModule,
]
