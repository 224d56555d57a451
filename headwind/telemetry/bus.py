"""Host telemetry bus interface.

Every signal is a long-lived push stream. ``InMemoryTelemetryBus`` backs
each signal with a replaying ``Broadcast``; tests and the CLI publish
samples into it directly.
"""

from __future__ import annotations

from typing import AsyncIterator, Protocol

from headwind.contracts.enums import RideState
from headwind.contracts.telemetry import LocationSample, NavigationState, RiderProfile
from headwind.streams import Broadcast


class TelemetryBus(Protocol):
    def location(self) -> AsyncIterator[LocationSample]: ...

    def speed(self) -> AsyncIterator[float]:
        """Ride speed in m/s."""
        ...

    def grade(self) -> AsyncIterator[float]:
        """Road grade in percent."""
        ...

    def ride_state(self) -> AsyncIterator[RideState]: ...

    def rider_profile(self) -> AsyncIterator[RiderProfile]: ...

    def navigation(self) -> AsyncIterator[NavigationState]: ...

    def distance_to_destination(self) -> AsyncIterator[float]:
        """Remaining route distance in meters."""
        ...

    def magnetometer_heading(self) -> AsyncIterator[float | None]:
        """Compass heading in degrees, ``None`` when unavailable."""
        ...


class InMemoryTelemetryBus:
    """Telemetry bus fed by explicit ``publish_*`` calls.

    Location samples are not replayed to late subscribers, matching a live
    GPS feed. All other signals behave as state holders.
    """

    def __init__(self) -> None:
        self.locations: Broadcast[LocationSample] = Broadcast()
        self.speeds: Broadcast[float] = Broadcast(replay_latest=True)
        self.grades: Broadcast[float] = Broadcast(replay_latest=True)
        self.ride_states: Broadcast[RideState] = Broadcast(initial=RideState.IDLE)
        self.rider_profiles: Broadcast[RiderProfile] = Broadcast(initial=RiderProfile())
        self.navigations: Broadcast[NavigationState] = Broadcast(initial=NavigationState())
        self.distances_to_destination: Broadcast[float] = Broadcast(replay_latest=True)
        self.magnetometer_headings: Broadcast[float | None] = Broadcast(initial=None)

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish_location(
        self,
        latitude: float | None,
        longitude: float | None,
        bearing: float | None = None,
        accuracy: float | None = None,
    ) -> None:
        self.locations.publish(
            LocationSample(latitude=latitude, longitude=longitude, bearing=bearing, accuracy=accuracy)
        )

    def publish_speed(self, speed: float) -> None:
        self.speeds.publish(speed)

    def publish_grade(self, grade_percent: float) -> None:
        self.grades.publish(grade_percent)

    def publish_ride_state(self, state: RideState) -> None:
        self.ride_states.publish(state)

    def publish_rider_profile(self, profile: RiderProfile) -> None:
        self.rider_profiles.publish(profile)

    def publish_navigation(self, navigation: NavigationState) -> None:
        self.navigations.publish(navigation)

    def publish_distance_to_destination(self, distance: float) -> None:
        self.distances_to_destination.publish(distance)

    def publish_magnetometer_heading(self, heading: float | None) -> None:
        self.magnetometer_headings.publish(heading)

    # ------------------------------------------------------------------
    # TelemetryBus
    # ------------------------------------------------------------------

    def location(self) -> AsyncIterator[LocationSample]:
        return self.locations.subscribe()

    def speed(self) -> AsyncIterator[float]:
        return self.speeds.subscribe()

    def grade(self) -> AsyncIterator[float]:
        return self.grades.subscribe()

    def ride_state(self) -> AsyncIterator[RideState]:
        return self.ride_states.subscribe()

    def rider_profile(self) -> AsyncIterator[RiderProfile]:
        return self.rider_profiles.subscribe()

    def navigation(self) -> AsyncIterator[NavigationState]:
        return self.navigations.subscribe()

    def distance_to_destination(self) -> AsyncIterator[float]:
        return self.distances_to_destination.subscribe()

    def magnetometer_heading(self) -> AsyncIterator[float | None]:
        return self.magnetometer_headings.subscribe()

    def close(self) -> None:
        """Complete every signal stream."""
        for broadcast in (
            self.locations,
            self.speeds,
            self.grades,
            self.ride_states,
            self.rider_profiles,
            self.navigations,
            self.distances_to_destination,
            self.magnetometer_headings,
        ):
            broadcast.close()
