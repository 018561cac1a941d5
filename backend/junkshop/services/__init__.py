# Overview: Service layer; each module encapsulates one area of business logic.
