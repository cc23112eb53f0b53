from prometheus_client import Counter, Gauge, Histogram


class BookingMetrics:
    """
    Expo Booking Core Metrics Collector

    Tracks booking outcomes per resource kind and the health of the push channel fan-out
    """

    def __init__(self):
        # ========== Booking Metrics ==========
        self.booking_outcomes = Counter(
            'expo_booking_outcomes_total',
            'Booking coordinator outcomes',
            ['resource_kind', 'operation', 'outcome'],  # operation: book/cancel
        )

        self.booking_duration = Histogram(
            'expo_booking_duration_seconds',
            'Time spent inside book/cancel including lock wait',
            ['resource_kind', 'operation'],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
        )

        self.lock_busy = Counter(
            'expo_resource_lock_busy_total',
            'Critical section acquisitions that timed out',
            ['resource_kind'],
        )

        # ========== Push Channel Metrics ==========
        self.frames_dispatched = Counter(
            'expo_channel_frames_dispatched_total',
            'Frames handed to subscriber buffers',
            ['message_type'],
        )

        self.frames_dropped = Counter(
            'expo_channel_frames_dropped_total',
            'Frames dropped because a subscriber buffer was full or closed',
            ['message_type'],
        )

        self.channel_connections = Gauge(
            'expo_channel_connections', 'Open push channel connections'
        )

    # ========== Helper Methods ==========

    def record_booking(
        self, *, resource_kind: str, operation: str, outcome: str, duration: float
    ):
        self.booking_outcomes.labels(
            resource_kind=resource_kind, operation=operation, outcome=outcome
        ).inc()
        self.booking_duration.labels(resource_kind=resource_kind, operation=operation).observe(
            duration
        )

    def record_lock_busy(self, *, resource_kind: str):
        self.lock_busy.labels(resource_kind=resource_kind).inc()

    def record_fan_out(self, *, message_type: str, delivered: int, dropped: int):
        if delivered:
            self.frames_dispatched.labels(message_type=message_type).inc(delivered)
        if dropped:
            self.frames_dropped.labels(message_type=message_type).inc(dropped)


# Global metrics instance
metrics = BookingMetrics()
