# Shared helpers for the CCS811 driver and tool.
#
# Copyright (C) 2023       Sanaa Hamel
#
# This file may be distributed under the terms of the GNU AGPLv3 license.

import logging
import typing
from typing import Any, Callable, List, MutableMapping, Sequence, TypeVar, Union

if typing.TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[logging.Logger]
else:
    LoggerAdapter = logging.LoggerAdapter

__all__ = ['LogPrefixed', 'chunked']

_Seq = TypeVar("_Seq", bound=Sequence[Any])


class LogPrefixed(LoggerAdapter):
    def __init__(
        self,
        logger: Union[logging.Logger, LoggerAdapter],
        format: Callable[[str], str],
    ):
        super().__init__(logger, None)  # type: ignore
        self.format = format

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]):
        return self.format(msg), kwargs


# Last chunk may be shorter than `n`.
def chunked(xs: _Seq, n: int) -> List[_Seq]:
    assert 0 < n
    return [xs[i : i + n] for i in range(0, len(xs), n)]  # type: ignore
