"""NVIDIA driver binding on top of pynvml."""

from __future__ import annotations

import logging
import warnings
from collections.abc import Callable
from typing import Any

from gpumetric._types import Device, DeviceStatus

logger = logging.getLogger("gpumetric.driver.nvml")

# pynvml is optional — imported at class init time.
warnings.filterwarnings("ignore", category=FutureWarning, message=".*pynvml.*deprecated.*")
try:
    import pynvml

    _HAS_PYNVML = True
except ImportError:
    pynvml = None  # type: ignore[assignment,unused-ignore]
    _HAS_PYNVML = False

_MIB = 1024**2


class NvmlDriver:
    """NVIDIA GPU driver using pynvml.

    Temperature, power, memory and utilization are required: any NVML
    error other than "not supported" fails the whole query. Codec
    utilization, PCIe throughput and BAR1 usage are optional and read as
    None whenever NVML cannot report them.
    """

    vendor = "NVIDIA"

    def __init__(self) -> None:
        if not _HAS_PYNVML:
            raise RuntimeError("pynvml is not installed")

    def init(self) -> None:
        assert pynvml is not None
        pynvml.nvmlInit()
        logger.debug("NVML driver version %s", pynvml.nvmlSystemGetDriverVersion())

    def count(self) -> int:
        assert pynvml is not None
        return int(pynvml.nvmlDeviceGetCount())

    def open_device(self, index: int) -> Device:
        assert pynvml is not None
        handle = pynvml.nvmlDeviceGetHandleByIndex(index)
        uuid = _to_str(pynvml.nvmlDeviceGetUUID(handle))
        name = _to_str(pynvml.nvmlDeviceGetName(handle))
        return Device(uuid=uuid, index=index, name=name, handle=handle)

    def status(self, device: Device) -> DeviceStatus:
        assert pynvml is not None
        handle = device.handle

        temperature = self._read(
            pynvml.nvmlDeviceGetTemperature, handle, pynvml.NVML_TEMPERATURE_GPU
        )
        power = self._read(pynvml.nvmlDeviceGetPowerUsage, handle)
        mem = self._read(pynvml.nvmlDeviceGetMemoryInfo, handle)
        util = self._read(pynvml.nvmlDeviceGetUtilizationRates, handle)

        decoder = self._read(pynvml.nvmlDeviceGetDecoderUtilization, handle, required=False)
        encoder = self._read(pynvml.nvmlDeviceGetEncoderUtilization, handle, required=False)
        rx_kb = self._read(
            pynvml.nvmlDeviceGetPcieThroughput,
            handle,
            pynvml.NVML_PCIE_UTIL_RX_BYTES,
            required=False,
        )
        tx_kb = self._read(
            pynvml.nvmlDeviceGetPcieThroughput,
            handle,
            pynvml.NVML_PCIE_UTIL_TX_BYTES,
            required=False,
        )
        bar1 = self._read(pynvml.nvmlDeviceGetBAR1MemoryInfo, handle, required=False)

        return DeviceStatus(
            temperature=temperature,
            power_usage=power,  # NVML reports mW
            memory_used=mem.used // _MIB if mem is not None else None,
            memory_free=mem.free // _MIB if mem is not None else None,
            gpu_utilization=util.gpu if util is not None else None,
            memory_utilization=util.memory if util is not None else None,
            # (percent, sampling period in us); only the percent is kept
            decoder_utilization=decoder[0] if decoder is not None else None,
            encoder_utilization=encoder[0] if encoder is not None else None,
            pcie_rx=rx_kb * 1024 if rx_kb is not None else None,  # KB → bytes
            pcie_tx=tx_kb * 1024 if tx_kb is not None else None,
            bar1_used=bar1.bar1Used if bar1 is not None else None,  # bytes
        )

    def shutdown(self) -> None:
        assert pynvml is not None
        pynvml.nvmlShutdown()

    @staticmethod
    def _read(fn: Callable[..., Any], *args: Any, required: bool = True) -> Any:
        assert pynvml is not None
        try:
            return fn(*args)
        except pynvml.NVMLError_NotSupported:
            return None
        except pynvml.NVMLError:
            if required:
                raise
            logger.debug("Optional NVML query %s failed", fn.__name__, exc_info=True)
            return None


def _to_str(value: str | bytes) -> str:
    # Older pynvml releases return bytes.
    if isinstance(value, bytes):
        return value.decode()
    return value
