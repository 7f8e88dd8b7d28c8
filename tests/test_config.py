# slashAI - Discord Bot and MCP Server
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""Tests for scheduler configuration."""

import sys
from pathlib import Path
from unittest.mock import patch

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from message_scheduler.config import SchedulerConfig


class TestSchedulerConfig:

    def test_default_config(self):
        config = SchedulerConfig()
        assert config.show_notifications is True
        assert config.send_buffer_ms == 500
        assert config.storage_key == "scheduled_messages"
        assert config.timezone == "UTC"
        assert config.preview_length == 50
        assert config.clear_on_shutdown is False

    def test_config_from_env_default(self):
        with patch.dict("os.environ", {}, clear=True):
            config = SchedulerConfig.from_env()
            assert config == SchedulerConfig()

    def test_config_from_env_custom_values(self):
        with patch.dict("os.environ", {
            "SCHEDULER_SHOW_NOTIFICATIONS": "false",
            "SCHEDULER_SEND_BUFFER_MS": "0",
            "SCHEDULER_STORAGE_KEY": "vc_scheduledMessages",
            "SCHEDULER_TIMEZONE": "Europe/Paris",
            "SCHEDULER_PREVIEW_LENGTH": "80",
            "SCHEDULER_CLEAR_ON_SHUTDOWN": "TRUE",
        }):
            config = SchedulerConfig.from_env()
            assert config.show_notifications is False
            assert config.send_buffer_ms == 0
            assert config.storage_key == "vc_scheduledMessages"
            assert config.timezone == "Europe/Paris"
            assert config.preview_length == 80
            assert config.clear_on_shutdown is True

    def test_invalid_timezone_falls_back_to_utc(self):
        config = SchedulerConfig(timezone="Mars/Olympus_Mons")
        assert config.timezone == "UTC"
        assert config.tz.zone == "UTC"
