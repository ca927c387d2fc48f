from pydantic import BaseModel

from .channel_ad_break_begin import ChannelAdBreakBeginEvent
from .channel_cheer import ChannelCheerEvent
from .channel_follow import ChannelFollowEvent
from .channel_raid import ChannelRaidEvent
from .channel_subscribe import ChannelSubscribeEvent
from .channel_update import ChannelUpdateEvent
from .common import WebhookPayload
from .stream_offline import StreamOfflineEvent
from .stream_online import StreamOnlineEvent

# Built-in event shapes. Types missing here are dispatched as raw dicts
# unless the caller registers a model for them.
EVENT_MODELS: dict[str, type[BaseModel]] = {
    "channel.ad_break.begin": ChannelAdBreakBeginEvent,
    "channel.cheer": ChannelCheerEvent,
    "channel.follow": ChannelFollowEvent,
    "channel.raid": ChannelRaidEvent,
    "channel.subscribe": ChannelSubscribeEvent,
    "channel.update": ChannelUpdateEvent,
    "stream.offline": StreamOfflineEvent,
    "stream.online": StreamOnlineEvent,
}

__all__ = [
    "EVENT_MODELS",
    "ChannelAdBreakBeginEvent",
    "ChannelCheerEvent",
    "ChannelFollowEvent",
    "ChannelRaidEvent",
    "ChannelSubscribeEvent",
    "ChannelUpdateEvent",
    "StreamOfflineEvent",
    "StreamOnlineEvent",
    "WebhookPayload",
]
